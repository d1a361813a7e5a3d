import numpy as np
import pytest

from stabletrack.perception.tracking.gallery import AppearanceGallery, cosine_distance


def basis(i, dim=8):
    v = np.zeros(dim)
    v[i] = 1.0
    return v


def test_gallery_evicts_oldest_at_capacity():
    g = AppearanceGallery(budget=3)
    for i in range(5):
        g.add(basis(i))
    assert len(g) == 3
    assert g.distance(basis(0)) == pytest.approx(1.0)
    assert g.distance(basis(4)) == pytest.approx(0.0)


def test_distance_is_nearest_neighbour_not_latest():
    g = AppearanceGallery(budget=5, embeddings=[basis(0), basis(1)])
    assert g.distance(basis(0)) == pytest.approx(0.0)


def test_distance_range_is_zero_to_two():
    g = AppearanceGallery(embeddings=[basis(0)])
    assert g.distance(-basis(0)) == pytest.approx(2.0)


def test_empty_gallery_distance_is_infinite():
    assert AppearanceGallery().distance(basis(0)) == float("inf")


def test_distances_vectorised_over_candidates():
    g = AppearanceGallery(embeddings=[basis(0)])
    q = 0.9 * basis(0) + np.sqrt(1 - 0.81) * basis(1)
    d = g.distances(np.stack([basis(0), q, basis(2)]))
    np.testing.assert_allclose(d, [0.0, 0.1, 1.0], atol=1e-9)


def test_cosine_distance_ignores_vector_scale():
    d = cosine_distance(np.array([[3.0, 0.0]]), np.array([[0.5, 0.0], [0.0, 2.0]]))
    np.testing.assert_allclose(d, [[0.0, 1.0]], atol=1e-12)


def test_budget_must_be_positive():
    with pytest.raises(ValueError):
        AppearanceGallery(budget=0)
