import numpy as np

from stabletrack.perception.tracking.kalman_filter import CHI2INV95, KalmanFilter, regularize


def test_initiate_starts_with_zero_velocity():
    kf = KalmanFilter()
    mean, cov = kf.initiate(np.array([150.0, 150.0, 1.0, 100.0]))
    assert mean.shape == (8,)
    assert cov.shape == (8, 8)
    assert np.all(mean[4:] == 0.0)
    assert np.all(np.linalg.eigvalsh(cov) > 0)


def test_predict_integrates_velocity_and_inflates_covariance():
    kf = KalmanFilter()
    mean, cov = kf.initiate(np.array([150.0, 150.0, 1.0, 100.0]))
    mean[4] = 2.0
    new_mean, new_cov = kf.predict(mean, cov)
    assert new_mean[0] == 152.0
    assert new_mean[1] == 150.0
    assert np.trace(new_cov) > np.trace(cov)


def test_predict_twice_integrates_two_steps():
    kf = KalmanFilter()
    mean, cov = kf.initiate(np.array([10.0, 20.0, 0.5, 40.0]))
    mean[5] = -3.0
    mean, cov = kf.predict(mean, cov)
    mean, cov = kf.predict(mean, cov)
    assert mean[1] == 14.0


def test_update_moves_toward_measurement_and_shrinks_covariance():
    kf = KalmanFilter()
    mean, cov = kf.initiate(np.array([150.0, 150.0, 1.0, 100.0]))
    mean, cov = kf.predict(mean, cov)
    measurement = np.array([160.0, 150.0, 1.0, 100.0])
    new_mean, new_cov = kf.update(mean, cov, measurement)
    assert 150.0 < new_mean[0] < 160.0
    assert new_mean[4] > 0.0
    assert np.trace(new_cov) < np.trace(cov)


def test_regularize_repairs_non_positive_definite_covariance():
    bad = np.diag([1.0, 1.0, -1e-10, 1.0])
    bad[0, 1] = 1e-6  # slightly asymmetric as well
    fixed = regularize(bad)
    np.testing.assert_allclose(fixed, fixed.T)
    np.linalg.cholesky(fixed)


def test_regularize_keeps_valid_covariance_unchanged():
    cov = np.diag([4.0, 1.0, 2.0])
    np.testing.assert_array_equal(regularize(cov), cov)


def test_gating_distance_separates_near_and_far_measurements():
    kf = KalmanFilter()
    mean, cov = kf.initiate(np.array([150.0, 150.0, 1.0, 100.0]))
    d = kf.gating_distance(mean, cov, np.array([[150.0, 150.0, 1.0, 100.0], [400.0, 150.0, 1.0, 100.0]]))
    assert d[0] < 1e-9
    assert d[1] > CHI2INV95[4]
