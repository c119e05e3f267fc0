"""Radius conversions and structuring elements for mask morphology."""

from numbers import Real

import numpy as np

from ..errors import ConfigurationError


def _check_radius(radius: float, name: str = 'radius') -> None:
    if not isinstance(radius, Real) or isinstance(radius, bool) or not np.isfinite(radius):
        raise ConfigurationError(f"{name} must be a finite number", context={name: radius})
    if radius < 0:
        raise ConfigurationError(f"{name} must be non-negative", context={name: radius})


def radius_to_measure(radius: float, ndim: int) -> float:
    """Compute the area (2D) or volume (3D) of a disk or sphere.

    Args:
        radius: Radius in voxels
        ndim: Dimensionality, 2 or 3

    Returns:
        pi * r^2 for ndim=2, 4/3 * pi * r^3 for ndim=3
    """
    _check_radius(radius)
    if ndim == 2:
        return float(np.pi * radius ** 2)
    if ndim == 3:
        return float(4.0 / 3.0 * np.pi * radius ** 3)
    raise ConfigurationError("ndim must be 2 or 3", context={'ndim': ndim})


def structuring_element(radius: float, ndim: int) -> np.ndarray:
    """Create a disk (2D) or ball (3D) structuring element.

    Contains every offset whose Euclidean norm is at most ``radius``.
    A radius of zero gives the single-voxel element.

    Args:
        radius: Radius in voxels
        ndim: Dimensionality, 2 or 3

    Returns:
        Boolean array of shape (2n+1,) * ndim with n = floor(radius)
    """
    _check_radius(radius)
    if ndim not in (2, 3):
        raise ConfigurationError("ndim must be 2 or 3", context={'ndim': ndim})

    n = int(np.floor(radius))
    grids = np.ogrid[tuple(slice(-n, n + 1) for _ in range(ndim))]
    dist_sq = sum(g.astype(np.float64) ** 2 for g in grids)
    return dist_sq <= radius ** 2 + 1e-9
