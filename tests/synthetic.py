"""Synthetic test images."""

import numpy as np


def make_blobs_image(width=30, height=20, value=200,
                     squares=((2, 3, 7), (20, 8, 7))):
    """Dark image with bright filled squares given as (x0, y0, side)."""
    img = np.zeros((height, width), dtype=np.uint8)
    for x0, y0, side in squares:
        img[y0:y0 + side, x0:x0 + side] = value
    return img


def make_disk_mask(size=21, radius=5):
    """Filled disk centred in a size x size image, values {0, 255}."""
    c = size // 2
    yy, xx = np.mgrid[:size, :size]
    return np.where((xx - c) ** 2 + (yy - c) ** 2 <= radius ** 2,
                    255, 0).astype(np.uint8)
