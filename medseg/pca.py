# -*- coding: utf-8 -*-
"""
pca.py — Principal Component Analysis Across Image Samples
===========================================================

Treats each grayscale image of a batch as one sample of a P-dimensional
vector (P = width * height), computes the principal components of the
sample covariance, and reconstructs the first image of the batch from a
reduced basis.

Pipeline (N >= 2 images):
    1.  Normalise each image to [0, 1] and stack into an N x P matrix.
    2.  Subtract the per-pixel mean image.
    3.  Eigen-decompose the P x P covariance (divisor N - 1):
          * N <= P — thin SVD of the centred matrix X = U S Vᵗ.  The
            covariance V S² Vᵗ / (N - 1) has eigenpairs
            (S² / (N - 1), columns of V); the remaining P - N
            eigenvalues are exactly zero and are never materialised.
          * N >  P — form Xᵗ X / (N - 1) directly and use a symmetric
            eigensolver.
    4.  Sort eigenpairs by eigenvalue, descending.
    5.  Keep the top ``min(c, #eigenvalues)`` eigenvectors.
    6.  Project the first image, reconstruct, add the mean back, clamp to
        [0, 1] and rescale to 0–255.

A batch of one image has no covariance; it is returned unchanged together
with a fixed, purely illustrative variance distribution.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from . import config
from .exceptions import InvalidInputError
from .utils import as_grayscale_buffer, check_count, check_dimensions, timer

logger = logging.getLogger(__name__)

# Returned for single-image calls; NOT computed from the data.
ILLUSTRATIVE_VARIANCE_RATIO = (0.65, 0.20, 0.10, 0.03, 0.01, 0.005, 0.003, 0.002)


# ──────────────────────────────────────────────────────────────────────────────
# Result containers
# ──────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EigenDecomposition:
    """Mean image and eigenpairs of the sample covariance.

    ``components[i]`` is the unit eigenvector paired with
    ``eigenvalues[i]``; eigenvalues are sorted in descending order.
    """

    mean: np.ndarray
    eigenvalues: np.ndarray
    components: np.ndarray
    n_samples: int

    @property
    def explained_variance_ratio(self) -> np.ndarray:
        return _variance_ratio(self.eigenvalues)


@dataclass(frozen=True)
class PCAResult:
    reconstructed: np.ndarray
    explained_variance_ratio: np.ndarray
    n_components: int
    illustrative: bool = False
    decomposition: Optional[EigenDecomposition] = None


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def _normalise_batch(images, width: int, height: int) -> np.ndarray:
    """Validate a batch and return it as an N x P float matrix in [0, 1].

    A single flat buffer (bytes, or a 1-D sequence of ints) is accepted as
    a batch of one.
    """
    check_dimensions(width, height)
    n_pixels = width * height

    if isinstance(images, (bytes, bytearray, memoryview)):
        images = [images]
    elif isinstance(images, np.ndarray):
        if images.ndim == 1 or images.shape == (height, width):
            images = [images]
    else:
        images = list(images)
        if (len(images) == n_pixels
                and all(isinstance(v, (int, np.integer)) for v in images)):
            images = [images]

    if len(images) == 0:
        raise InvalidInputError("PCA requires at least one image")

    rows = []
    for i, image in enumerate(images):
        try:
            rows.append(as_grayscale_buffer(image, width, height))
        except InvalidInputError as exc:
            raise InvalidInputError(f"Image {i} of batch: {exc}") from exc

    return np.vstack(rows).astype(np.float64) / 255.0


def _variance_ratio(eigenvalues: np.ndarray) -> np.ndarray:
    """Fraction of total variance per eigenvalue (sums to 1)."""
    total = float(eigenvalues.sum())
    if total <= 0.0:
        return np.full(eigenvalues.size, 1.0 / eigenvalues.size)
    return eigenvalues / total


def _to_bytes(values: np.ndarray) -> np.ndarray:
    clipped = np.clip(values, 0.0, 1.0)
    return np.rint(clipped * 255.0).astype(np.uint8)


def _eigenpairs_from_centered(centered: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Eigenvalues and eigenvectors (rows) of the covariance of *centered*."""
    n_samples, n_pixels = centered.shape
    dof = n_samples - 1

    if n_samples <= n_pixels:
        _, singular, vt = np.linalg.svd(centered, full_matrices=False)
        eigenvalues = singular ** 2 / dof
        vectors = vt
    else:
        covariance = centered.T @ centered / dof
        eigenvalues, columns = np.linalg.eigh(covariance)
        vectors = columns.T

    # Round-off can push null-space eigenvalues slightly below zero.
    eigenvalues = np.clip(eigenvalues, 0.0, None)
    order = np.argsort(eigenvalues, kind="stable")[::-1]
    return eigenvalues[order], vectors[order]


# ──────────────────────────────────────────────────────────────────────────────
# Public API
# ──────────────────────────────────────────────────────────────────────────────

def compute_eigen_decomposition(images: Sequence, width: int,
                                height: int) -> EigenDecomposition:
    """Eigen-decompose the sample covariance of a batch of >= 2 images.

    Parameters
    ----------
    images : sequence of grayscale buffers
        All of size ``width * height``.
    width, height : int
        Shared image dimensions.

    Raises
    ------
    InvalidInputError
        If the batch has fewer than two images, or any image is malformed.
    """
    data = _normalise_batch(images, width, height)
    if data.shape[0] < 2:
        raise InvalidInputError(
            "Covariance needs at least two images, got 1")
    return _decompose(data)


def _decompose(data: np.ndarray) -> EigenDecomposition:
    n_samples = data.shape[0]
    mean = data.mean(axis=0)
    centered = data - mean
    eigenvalues, components = _eigenpairs_from_centered(centered)

    logger.debug("PCA decomposition: %s samples, %s pixels, %s eigenpairs",
                 n_samples, data.shape[1], eigenvalues.size)
    return EigenDecomposition(mean=mean, eigenvalues=eigenvalues,
                              components=components, n_samples=n_samples)


def reconstruct(first_image: np.ndarray, decomposition: EigenDecomposition,
                n_components: int) -> np.ndarray:
    """Project a normalised image onto the top eigenvectors and back.

    Returns the reconstruction as a flat uint8 buffer.
    """
    basis = decomposition.components[:min(n_components,
                                          decomposition.eigenvalues.size)]
    centered = first_image - decomposition.mean
    coefficients = basis @ centered
    restored = coefficients @ basis + decomposition.mean
    return _to_bytes(restored)


@timer
def pca_reduce(images: Sequence, width: int, height: int,
               n_components: Optional[int] = None) -> PCAResult:
    """Reconstruct the first image of a batch from its principal components.

    Parameters
    ----------
    images : sequence of grayscale buffers, or a single buffer
        One or more images of identical size.
    width, height : int
        Shared image dimensions.
    n_components : int, optional
        Size of the reconstruction basis (>= 1).  Defaults to the active
        preset.

    Returns
    -------
    PCAResult
        ``reconstructed`` is the first image rebuilt from
        ``min(n_components, #eigenvalues)`` components;
        ``explained_variance_ratio`` covers *all* eigenvalues.  For a
        single image the input is returned unchanged and the ratios are
        illustrative (``illustrative=True``).
    """
    n_components = check_count(config.resolve(n_components, "pca_components"),
                               "Component count")
    data = _normalise_batch(images, width, height)

    if data.shape[0] < 2:
        logger.info("PCA called with a single image; returning it unchanged")
        return PCAResult(
            reconstructed=_to_bytes(data[0]),
            explained_variance_ratio=np.array(ILLUSTRATIVE_VARIANCE_RATIO),
            n_components=0,
            illustrative=True,
        )

    decomposition = _decompose(data)
    used = min(n_components, decomposition.eigenvalues.size)
    reconstructed = reconstruct(data[0], decomposition, used)

    return PCAResult(
        reconstructed=reconstructed,
        explained_variance_ratio=decomposition.explained_variance_ratio,
        n_components=used,
        decomposition=decomposition,
    )


def apply_pca(images: Sequence, width: int, height: int,
              n_components: Optional[int] = None) -> np.ndarray:
    """Return only the reconstructed first image of :func:`pca_reduce`."""
    return pca_reduce(images, width, height, n_components).reconstructed


def compute_explained_variance_ratio(images: Sequence, width: int,
                                     height: int) -> np.ndarray:
    """Explained variance ratio of every principal component of a batch.

    For a single image the fixed illustrative distribution is returned;
    it carries no information about the data.
    """
    data = _normalise_batch(images, width, height)
    if data.shape[0] < 2:
        return np.array(ILLUSTRATIVE_VARIANCE_RATIO)
    return _decompose(data).explained_variance_ratio
