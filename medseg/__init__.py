# medseg/ — Grayscale Medical Image Segmentation
"""
Pixel-buffer segmentation algorithms for single-channel medical images.

Every algorithm takes a flat, row-major grayscale buffer (values 0–255,
``index = y * width + x``) plus its width and height, and returns a buffer
of the same length (mask, labels or reconstructed pixels).

Submodules:
    otsu            — Global Otsu threshold and binary mask
    kmeans          — K-means intensity clustering
    pca             — PCA reconstruction across a batch of images
    region_growing  — Seeded 8-connected region growing
    watershed       — Distance-transform, marker-based watershed
    analysis        — Mask quality metrics and label summaries
    config          — Parameter presets
    utils           — Buffer validation, RNG factory, shared helpers
    cli             — Command-line driver (image files in, images out)
"""

from .config import get_config, set_config
from .exceptions import InvalidInputError, MedsegError
from .kmeans import KMeansResult, apply_kmeans, kmeans_cluster
from .otsu import (OtsuResult, apply_otsu_thresholding,
                   compute_otsu_threshold, otsu_threshold)
from .pca import (EigenDecomposition, PCAResult, apply_pca,
                  compute_eigen_decomposition,
                  compute_explained_variance_ratio, pca_reduce)
from .region_growing import apply_region_growing, image_center
from .watershed import (WatershedResult, apply_watershed,
                        compute_distance_transform, find_markers,
                        flood_from_markers, generate_binary_mask,
                        watershed_segment)

__version__ = "0.1.0"

__all__ = [
    "EigenDecomposition",
    "InvalidInputError",
    "KMeansResult",
    "MedsegError",
    "OtsuResult",
    "PCAResult",
    "WatershedResult",
    "apply_kmeans",
    "apply_otsu_thresholding",
    "apply_pca",
    "apply_region_growing",
    "apply_watershed",
    "compute_distance_transform",
    "compute_eigen_decomposition",
    "compute_explained_variance_ratio",
    "compute_otsu_threshold",
    "find_markers",
    "flood_from_markers",
    "generate_binary_mask",
    "get_config",
    "image_center",
    "kmeans_cluster",
    "otsu_threshold",
    "pca_reduce",
    "set_config",
    "watershed_segment",
]
