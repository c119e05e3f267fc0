"""Piecewise mapping of normalized PETRA intensity to Hounsfield Units."""

import numpy as np

from ..config import CalibrationConfig
from ..errors import ConfigurationError, ShapeMismatchError

HU_MIN = np.iinfo(np.int16).min
HU_MAX = np.iinfo(np.int16).max


def round_half_away(values: np.ndarray) -> np.ndarray:
    """Round to nearest integer, ties away from zero."""
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def map_to_hu(
    normalized: np.ndarray,
    head_mask: np.ndarray,
    skull_mask: np.ndarray,
    slope: float,
    intercept: float,
    background_hu: float = -1000.0,
    soft_tissue_hu: float = 42.0
) -> np.ndarray:
    """Generate a pseudo-CT from a normalized image and tissue masks.

    Voxels are assigned in priority order, later rules winning:
    background everywhere, ``soft_tissue_hu`` inside the head, and
    ``slope * intensity + intercept`` inside the skull.

    Args:
        normalized: Histogram-normalized intensity (soft tissue at 1.0)
        head_mask: Boolean head mask
        skull_mask: Boolean skull mask (expected to lie within the head)
        slope: Linear mapping slope
        intercept: Linear mapping intercept
        background_hu: HU value outside the head
        soft_tissue_hu: HU value for non-bone head voxels

    Returns:
        int16 pseudo-CT volume in HU
    """
    normalized = np.asarray(normalized)
    for name, mask in (('head_mask', head_mask), ('skull_mask', skull_mask)):
        if not isinstance(mask, np.ndarray) or mask.dtype != np.bool_:
            raise ConfigurationError(
                f"{name} must be a boolean numpy array",
                stage='hu_mapping', context={'dtype': getattr(mask, 'dtype', None)}
            )
        if mask.shape != normalized.shape:
            raise ShapeMismatchError(
                f"{name} shape does not match the intensity volume",
                stage='hu_mapping',
                context={'shape': mask.shape, 'expected': normalized.shape}
            )

    pct = np.full(normalized.shape, background_hu, dtype=np.float64)
    pct[head_mask] = soft_tissue_hu
    pct[skull_mask] = slope * normalized[skull_mask].astype(np.float64) + intercept

    pct = np.clip(round_half_away(pct), HU_MIN, HU_MAX)
    return pct.astype(np.int16)


def map_to_hu_with_calibration(
    normalized: np.ndarray,
    head_mask: np.ndarray,
    skull_mask: np.ndarray,
    calibration: CalibrationConfig
) -> np.ndarray:
    """``map_to_hu`` using the constants of a calibration revision."""
    calibration.validate()
    return map_to_hu(
        normalized,
        head_mask,
        skull_mask,
        slope=calibration.slope,
        intercept=calibration.intercept,
        background_hu=calibration.background_hu,
        soft_tissue_hu=calibration.soft_tissue_hu
    )
