import logging

import numpy as np
import pytest

from medseg import InvalidInputError
from medseg.kmeans import apply_kmeans, initialize_centroids, kmeans_cluster


def test_two_halves_converge_to_extremes():
    pixels = np.array([0] * 32 + [255] * 32, dtype=np.uint8)
    result = kmeans_cluster(pixels, 8, 8, k=2, rng=0)

    assert result.converged
    np.testing.assert_allclose(np.sort(result.centroids), [0.0, 255.0])
    first, second = result.labels[:32], result.labels[32:]
    assert len(set(first)) == 1 and len(set(second)) == 1
    assert first[0] != second[0]


def test_labels_within_range(rng):
    pixels = rng.integers(0, 256, size=40 * 30).astype(np.uint8)
    labels = apply_kmeans(pixels, 40, 30, k=5, rng=3)
    assert labels.min() >= 0
    assert labels.max() < 5
    assert labels.size == 40 * 30


def test_same_seed_is_reproducible(rng):
    pixels = rng.integers(0, 256, size=400).astype(np.uint8)
    a = apply_kmeans(pixels, 20, 20, k=4, rng=99)
    b = apply_kmeans(pixels, 20, 20, k=4, rng=99)
    np.testing.assert_array_equal(a, b)


def test_calls_do_not_share_generator_state(rng):
    pixels = rng.integers(0, 256, size=400).astype(np.uint8)
    first = apply_kmeans(pixels, 20, 20, k=4)
    apply_kmeans(pixels, 20, 20, k=6)
    again = apply_kmeans(pixels, 20, 20, k=4)
    np.testing.assert_array_equal(first, again)


def test_single_cluster_labels_everything_zero(rng):
    pixels = rng.integers(0, 256, size=100).astype(np.uint8)
    result = kmeans_cluster(pixels, 10, 10, k=1)
    assert np.all(result.labels == 0)
    assert result.centroids[0] == pytest.approx(pixels.mean())


def test_k_larger_than_distinct_values():
    pixels = np.array([10, 10, 200, 200], dtype=np.uint8)
    result = kmeans_cluster(pixels, 2, 2, k=5, rng=1)
    assert result.labels.max() < 5
    assert result.centroids.size == 5
    # Both intensities are always separated.
    assert result.labels[0] != result.labels[2]


def test_initial_centroids_are_distinct_when_possible():
    data = np.array([1, 1, 2, 3, 3, 4], dtype=np.uint8)
    centroids = initialize_centroids(data, 4, np.random.default_rng(5))
    assert sorted(centroids) == [1.0, 2.0, 3.0, 4.0]


def test_initial_centroids_fill_with_replacement():
    data = np.array([7, 7, 9], dtype=np.uint8)
    centroids = initialize_centroids(data, 4, np.random.default_rng(5))
    assert centroids.size == 4
    assert set(centroids) == {7.0, 9.0}


def test_non_convergence_is_reported_not_raised(rng, caplog):
    pixels = rng.integers(0, 256, size=900).astype(np.uint8)
    with caplog.at_level(logging.WARNING, logger="medseg.kmeans"):
        result = kmeans_cluster(pixels, 30, 30, k=8, max_iterations=1, rng=2)
    assert not result.converged
    assert result.iterations == 1
    assert result.labels.size == 900
    assert any(r.levelno == logging.WARNING and "without converging" in r.getMessage()
               for r in caplog.records)


def test_accepts_generator_instance():
    pixels = np.arange(16, dtype=np.uint8)
    gen = np.random.default_rng(11)
    labels = apply_kmeans(pixels, 4, 4, k=2, rng=gen)
    assert set(np.unique(labels)) <= {0, 1}


@pytest.mark.parametrize("k, iterations",
                         [(0, 10), (-1, 10), (2, 0), (2.0, 10), (2, 1.5)])
def test_invalid_parameters_rejected(k, iterations):
    with pytest.raises(InvalidInputError):
        kmeans_cluster([0, 1, 2, 3], 2, 2, k=k, max_iterations=iterations)


def test_defaults_come_from_preset(rng):
    pixels = rng.integers(0, 256, size=100).astype(np.uint8)
    labels = apply_kmeans(pixels, 10, 10)
    assert labels.max() < 3
