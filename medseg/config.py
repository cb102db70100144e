# -*- coding: utf-8 -*-
"""
config.py — Parameter Presets
==============================

Default tunables for every algorithm, grouped into named presets.  Algorithm
functions fall back to the active preset whenever the caller passes ``None``
for a parameter.

Key parameters:
    kmeans_k                       — number of intensity clusters.
    kmeans_max_iterations          — hard cap on assignment passes.
    kmeans_seed                    — seed for a fresh per-call generator.
    pca_components                 — size of the reconstruction basis.
    region_tolerance               — max |I - I_seed| admitted into a region.
    watershed_mask_threshold       — midpoint used when no mask is supplied
                                     (foreground = intensity > threshold).
    watershed_min_marker_distance  — minimum distance-map value for a marker.
"""

from typing import Any, Dict

from .exceptions import InvalidInputError

# ──────────────────────────────────────────────────────────────────────────────
# Presets
# ──────────────────────────────────────────────────────────────────────────────

CONFIG_DEFAULT = {
    # K-means
    "kmeans_k": 3,
    "kmeans_max_iterations": 100,
    "kmeans_seed": 42,

    # PCA
    "pca_components": 2,

    # Region growing
    "region_tolerance": 10,

    # Watershed
    "watershed_mask_threshold": 127,
    "watershed_min_marker_distance": 3.0,
}

# Flatter histograms (ultrasound, low-dose CT) need a wider admission band
# and one extra cluster to separate soft tissue from noise.
CONFIG_LOW_CONTRAST = {
    "kmeans_k": 4,
    "kmeans_max_iterations": 200,
    "kmeans_seed": 42,
    "pca_components": 3,
    "region_tolerance": 25,
    "watershed_mask_threshold": 100,
    "watershed_min_marker_distance": 3.0,
}

PRESETS = {
    "default": CONFIG_DEFAULT,
    "low_contrast": CONFIG_LOW_CONTRAST,
}

# The currently active preset (switched by set_config).
_active_config: Dict[str, Any] = CONFIG_DEFAULT


# ──────────────────────────────────────────────────────────────────────────────
# Configuration API
# ──────────────────────────────────────────────────────────────────────────────

def set_config(preset: str = "default") -> None:
    """Switch the active parameter preset.

    The preset is process-wide; pick it once at startup.  Callers running
    algorithms from several threads should pass explicit parameters rather
    than switch presets underneath each other.

    Parameters
    ----------
    preset : str
        ``'default'`` or ``'low_contrast'``.

    Raises
    ------
    InvalidInputError
        If *preset* is not a known preset name.
    """
    global _active_config
    if preset not in PRESETS:
        raise InvalidInputError(f"Unknown preset '{preset}'. "
                                f"Choose from {sorted(PRESETS)}")
    _active_config = PRESETS[preset]


def get_config() -> Dict[str, Any]:
    """Return a copy of the currently active configuration."""
    return dict(_active_config)


def resolve(value: Any, key: str) -> Any:
    """Return *value*, or the active preset's entry for *key* if it is None."""
    if value is None:
        return _active_config[key]
    return value
