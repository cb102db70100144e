import numpy as np
import pytest

from medseg import InvalidInputError
from medseg.otsu import otsu_threshold
from medseg.watershed import (SQRT2, apply_watershed,
                              compute_distance_transform, find_markers,
                              flood_from_markers, generate_binary_mask,
                              watershed_segment)

from synthetic import make_blobs_image


# ──────────────────────────────────────────────────────────────────────────────
# Distance transform
# ──────────────────────────────────────────────────────────────────────────────

def test_background_is_zero_and_foreground_positive(disk_mask):
    dist = compute_distance_transform(disk_mask, 21, 21)
    flat = disk_mask.reshape(-1)
    assert np.all(dist[flat == 0] == 0)
    assert np.all(dist[flat > 0] > 0)
    assert np.all(np.isfinite(dist))


def test_square_distances_follow_chamfer_rings():
    mask = np.zeros((9, 9), dtype=np.uint8)
    mask[1:8, 1:8] = 1
    dist = compute_distance_transform(mask, 9, 9).reshape(9, 9)
    assert dist[4, 4] == pytest.approx(4.0)
    assert dist[1, 1] == pytest.approx(1.0)
    assert dist[2, 4] == pytest.approx(2.0)
    assert dist[3, 3] == pytest.approx(3.0)


def test_diagonal_step_costs_sqrt2():
    # A single background pixel far from the image border.
    mask = np.ones((40, 40), dtype=np.uint8)
    mask[10, 10] = 0
    dist = compute_distance_transform(mask, 40, 40).reshape(40, 40)
    assert dist[11, 11] == pytest.approx(SQRT2)
    assert dist[12, 12] == pytest.approx(2 * SQRT2)
    assert dist[10, 12] == pytest.approx(2.0)


def test_image_border_counts_as_background():
    mask = np.ones(25, dtype=np.uint8)
    dist = compute_distance_transform(mask, 5, 5).reshape(5, 5)
    assert dist[0, 0] == pytest.approx(1.0)
    assert dist[2, 2] == pytest.approx(3.0)


# ──────────────────────────────────────────────────────────────────────────────
# Markers
# ──────────────────────────────────────────────────────────────────────────────

def test_disk_has_single_marker_at_center(disk_mask):
    dist = compute_distance_transform(disk_mask, 21, 21)
    assert find_markers(dist, 21, 21) == [(10, 10)]


def test_markers_below_min_distance_ignored():
    dist = np.zeros(25)
    dist[12] = 2.5
    assert find_markers(dist, 5, 5, min_distance=3.0) == []
    assert find_markers(dist, 5, 5, min_distance=2.0) == [(2, 2)]


def test_plateau_ties_are_all_markers():
    dist = np.zeros((5, 6))
    dist[2, 2] = dist[2, 3] = 4.0
    markers = find_markers(dist.reshape(-1), 6, 5)
    assert markers == [(2, 2), (3, 2)]


# ──────────────────────────────────────────────────────────────────────────────
# Flooding
# ──────────────────────────────────────────────────────────────────────────────

def test_otsu_mask_then_watershed_separates_two_blobs(blobs_image):
    height, width = blobs_image.shape
    mask = otsu_threshold(blobs_image, width, height).mask
    result = watershed_segment(blobs_image, width, height, binary_mask=mask)

    labels = result.labels.reshape(height, width)
    assert set(np.unique(labels)) == {0, 1, 2}
    assert len(result.markers) == 2

    first = labels[3:10, 2:9]
    second = labels[8:15, 20:27]
    assert len(np.unique(first)) == 1 and first[0, 0] > 0
    assert len(np.unique(second)) == 1 and second[0, 0] > 0
    assert first[0, 0] != second[0, 0]
    assert np.all(labels[blobs_image == 0] == 0)


def test_no_unprocessed_labels_remain(rng):
    pixels = rng.integers(0, 256, size=40 * 40).astype(np.uint8)
    result = watershed_segment(pixels, 40, 40)
    assert result.labels.min() >= 0
    positive = set(np.unique(result.labels)) - {0}
    assert len(positive) <= len(result.markers)


def test_markers_keep_their_labels():
    img = make_blobs_image(width=40, height=30,
                           squares=((2, 2, 9), (12, 4, 9), (25, 15, 11)))
    result = watershed_segment(img, 40, 30)
    marker_labels = {result.labels[y * 40 + x] for x, y in result.markers}
    assert 0 not in marker_labels
    assert marker_labels == set(np.unique(result.labels)) - {0}


def test_even_sided_blobs_get_one_label_each():
    # 8x8 squares have a 2x2 plateau at the distance peak.
    img = make_blobs_image(squares=((2, 3, 8), (20, 8, 8)))
    height, width = img.shape
    mask = otsu_threshold(img, width, height).mask
    result = watershed_segment(img, width, height, binary_mask=mask)
    labels = result.labels.reshape(height, width)

    assert len(result.markers) == 8
    assert set(np.unique(labels)) == {0, 1, 2}
    assert np.all(labels[3:11, 2:10] == 1)
    assert np.all(labels[8:16, 20:28] == 2)
    assert np.all(labels[img == 0] == 0)


def test_touching_equal_markers_share_a_label():
    dist = np.zeros((3, 6))
    dist[1, 0] = dist[1, 1] = 4.0
    dist[1, 2] = 3.0
    dist[1, 4] = 4.0
    labels = flood_from_markers(dist.reshape(-1), [(0, 1), (1, 1), (2, 1), (4, 1)],
                                6, 3, mask=np.ones(18))
    labels = labels.reshape(3, 6)
    assert labels[1, 0] == labels[1, 1] == 1
    assert labels[1, 2] == 2
    assert labels[1, 4] == 3


def test_bridged_blobs_are_split_between_markers():
    # Two squares joined by a one-pixel bridge: one component, two basins.
    mask = np.zeros((13, 25), dtype=np.uint8)
    mask[2:11, 2:11] = 255
    mask[2:11, 14:23] = 255
    mask[6, 11:14] = 255

    result = watershed_segment(mask, 25, 13, binary_mask=mask)
    labels = result.labels.reshape(13, 25)

    assert result.markers == [(6, 6), (18, 6)]
    assert labels[6, 6] != labels[6, 18]
    assert np.all(labels[2:11, 2:11] == labels[6, 6])
    assert np.all(labels[2:11, 14:23] == labels[6, 18])
    assert np.all((labels > 0) == (mask > 0))


def test_flood_without_markers_is_all_background():
    dist = np.ones(9)
    labels = flood_from_markers(dist, [], 3, 3)
    np.testing.assert_array_equal(labels, np.zeros(9))


def test_flood_marker_out_of_bounds_rejected():
    with pytest.raises(InvalidInputError):
        flood_from_markers(np.ones(9), [(3, 0)], 3, 3)


# ──────────────────────────────────────────────────────────────────────────────
# Default mask
# ──────────────────────────────────────────────────────────────────────────────

def test_default_mask_uses_strict_midpoint():
    mask = generate_binary_mask([127, 128, 0, 255], 2, 2)
    np.testing.assert_array_equal(mask, [0, 255, 0, 255])


def test_apply_watershed_without_mask_matches_explicit_midpoint(blobs_image):
    height, width = blobs_image.shape
    implicit = apply_watershed(blobs_image, width, height)
    explicit = apply_watershed(
        blobs_image, width, height,
        binary_mask=generate_binary_mask(blobs_image, width, height))
    np.testing.assert_array_equal(implicit, explicit)


def test_uniform_dark_image_is_all_background():
    labels = apply_watershed(np.zeros(100, dtype=np.uint8), 10, 10)
    assert np.all(labels == 0)


def test_mask_length_mismatch_rejected():
    with pytest.raises(InvalidInputError):
        apply_watershed(np.zeros(9), 3, 3, binary_mask=np.zeros(8))
