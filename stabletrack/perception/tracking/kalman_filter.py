from __future__ import annotations

from typing import Tuple

import numpy as np
import scipy.linalg

from stabletrack.utils.logger import get_logger

logger = get_logger(__name__)

# 0.95 quantile of the chi-square distribution with N degrees of freedom.
CHI2INV95 = {
    1: 3.8415,
    2: 5.9915,
    3: 7.8147,
    4: 9.4877,
    5: 11.070,
    6: 12.592,
    7: 14.067,
    8: 15.507,
    9: 16.919,
}


def regularize(covariance: np.ndarray, eps: float = 1e-9, max_tries: int = 6) -> np.ndarray:
    """
    Return a symmetric positive-definite copy of covariance.

    Floating-point drift can leave a covariance slightly asymmetric or with a
    non-positive eigenvalue; add a growing diagonal jitter until Cholesky succeeds,
    then fall back to clipping the spectrum.
    """
    cov = 0.5 * (covariance + covariance.T)
    jitter = eps
    eye = np.eye(cov.shape[0])
    for attempt in range(max_tries + 1):
        try:
            np.linalg.cholesky(cov)
            if attempt:
                logger.debug("Covariance regularised with jitter %.1e", jitter / 10.0)
            return cov
        except np.linalg.LinAlgError:
            cov = cov + eye * jitter
            jitter *= 10.0

    w, v = np.linalg.eigh(0.5 * (covariance + covariance.T))
    w = np.clip(w, eps, None)
    logger.debug("Covariance regularised by eigenvalue clipping")
    return (v * w) @ v.T


class KalmanFilter:
    """
    Constant-velocity Kalman filter for boxes in (cx, cy, a, h) space.

    State: [cx, cy, a, h, vcx, vcy, va, vh] where a = w / h. The time step is
    one frame. Noise is scaled by the current box height, so large (near) boxes
    tolerate larger pixel motion than small ones.
    """

    ndim = 4

    def __init__(self, std_weight_position: float = 1.0 / 20, std_weight_velocity: float = 1.0 / 160):
        dt = 1.0
        self._motion_mat = np.eye(2 * self.ndim)
        for i in range(self.ndim):
            self._motion_mat[i, self.ndim + i] = dt
        self._update_mat = np.eye(self.ndim, 2 * self.ndim)

        self._std_weight_position = std_weight_position
        self._std_weight_velocity = std_weight_velocity

    def initiate(self, measurement: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Mean and covariance for a new track; velocities start at zero."""
        mean_pos = np.asarray(measurement, dtype=np.float64)
        mean = np.r_[mean_pos, np.zeros_like(mean_pos)]

        h = measurement[3]
        std = [
            2 * self._std_weight_position * h,
            2 * self._std_weight_position * h,
            1e-2,
            2 * self._std_weight_position * h,
            10 * self._std_weight_velocity * h,
            10 * self._std_weight_velocity * h,
            1e-5,
            10 * self._std_weight_velocity * h,
        ]
        covariance = np.diag(np.square(std))
        return mean, covariance

    def predict(self, mean: np.ndarray, covariance: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        h = mean[3]
        std_pos = [
            self._std_weight_position * h,
            self._std_weight_position * h,
            1e-2,
            self._std_weight_position * h,
        ]
        std_vel = [
            self._std_weight_velocity * h,
            self._std_weight_velocity * h,
            1e-5,
            self._std_weight_velocity * h,
        ]
        motion_cov = np.diag(np.square(np.r_[std_pos, std_vel]))

        mean = self._motion_mat @ mean
        covariance = self._motion_mat @ covariance @ self._motion_mat.T + motion_cov
        return mean, regularize(covariance)

    def project(self, mean: np.ndarray, covariance: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Map the state distribution into measurement space."""
        h = mean[3]
        std = [
            self._std_weight_position * h,
            self._std_weight_position * h,
            1e-1,
            self._std_weight_position * h,
        ]
        innovation_cov = np.diag(np.square(std))

        projected_mean = self._update_mat @ mean
        projected_cov = self._update_mat @ covariance @ self._update_mat.T
        return projected_mean, projected_cov + innovation_cov

    def update(self, mean: np.ndarray, covariance: np.ndarray, measurement: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Correct the predicted state with an observed (cx, cy, a, h) box."""
        projected_mean, projected_cov = self.project(mean, covariance)
        projected_cov = regularize(projected_cov)

        chol_factor, lower = scipy.linalg.cho_factor(projected_cov, lower=True, check_finite=False)
        kalman_gain = scipy.linalg.cho_solve(
            (chol_factor, lower),
            (covariance @ self._update_mat.T).T,
            check_finite=False,
        ).T
        innovation = np.asarray(measurement, dtype=np.float64) - projected_mean

        new_mean = mean + innovation @ kalman_gain.T
        new_covariance = covariance - kalman_gain @ projected_cov @ kalman_gain.T
        return new_mean, regularize(new_covariance)

    def gating_distance(self, mean: np.ndarray, covariance: np.ndarray, measurements: np.ndarray) -> np.ndarray:
        """
        Squared Mahalanobis distance between the state distribution and each row of
        measurements (N x 4, (cx, cy, a, h)). Compare against CHI2INV95[4].
        """
        projected_mean, projected_cov = self.project(mean, covariance)
        cholesky_factor = np.linalg.cholesky(regularize(projected_cov))
        d = np.atleast_2d(measurements) - projected_mean
        z = scipy.linalg.solve_triangular(cholesky_factor, d.T, lower=True, check_finite=False, overwrite_b=True)
        return np.sum(z * z, axis=0)
