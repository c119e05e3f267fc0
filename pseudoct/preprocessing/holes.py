"""Hole filling for binary tissue masks.

Two strategies are provided:

- ``fill_small_holes`` closes small enclosed background pockets while
  keeping large ones open. Used for the skull mask, where noise produces
  small false-negative gaps but sinuses are genuine cavities.
- ``fill_all_holes`` removes every enclosed pocket by sweeping 2D hole
  filling along one or more axes between a dilation and an erosion. Used
  for the head mask, which should be a single solid volume.
"""

from numbers import Integral
from typing import Sequence

import numpy as np
from scipy.ndimage import (
    binary_dilation,
    binary_erosion,
    binary_fill_holes,
    generate_binary_structure,
)
from tqdm import tqdm

from ..errors import ConfigurationError
from .components import check_mask, label_components, component_sizes
from .geometry import radius_to_measure, structuring_element


def fill_holes(mask: np.ndarray) -> np.ndarray:
    """Fill every background region not connected to the array border.

    Background connectivity is face adjacency (4 in 2D, 6 in 3D).
    """
    structure = generate_binary_structure(mask.ndim, 1)
    return binary_fill_holes(mask, structure=structure)


def dilate(mask: np.ndarray, radius: float) -> np.ndarray:
    """Dilate with a disk/ball; voxels outside the array count as background."""
    if radius == 0:
        return mask.copy()
    return binary_dilation(mask, structure=structuring_element(radius, mask.ndim))


def erode(mask: np.ndarray, radius: float) -> np.ndarray:
    """Erode with a disk/ball; voxels outside the array count as foreground.

    Treating the outside as foreground makes ``erode(dilate(m))`` a proper
    closing that never removes voxels of ``m`` at the array edges.
    """
    if radius == 0:
        return mask.copy()
    return binary_erosion(
        mask, structure=structuring_element(radius, mask.ndim), border_value=1
    )


def close(mask: np.ndarray, radius: float) -> np.ndarray:
    """Morphological closing with a disk/ball of the given radius."""
    return erode(dilate(mask, radius), radius)


def fill_small_holes(
    mask: np.ndarray,
    close_radius: float = 2.0,
    max_hole_radius: float = 100.0
) -> np.ndarray:
    """Fill enclosed holes smaller than a sphere (or disk) of given radius.

    The mask is first closed so thin surface defects do not open small
    holes to the outside. Holes are then found as the enclosed background
    components of the closed mask; components with at least
    ceil(radius_to_measure(max_hole_radius)) voxels are left open.

    Args:
        mask: 2D or 3D boolean mask
        close_radius: Radius of the closing structuring element (voxels)
        max_hole_radius: Radius of the largest hole to fill (voxels)

    Returns:
        New boolean mask, a superset of ``mask``
    """
    check_mask(mask)
    for name, value in (('close_radius', close_radius), ('max_hole_radius', max_hole_radius)):
        if not np.isscalar(value) or isinstance(value, bool) or not value >= 0:
            raise ConfigurationError(
                f"{name} must be a non-negative number",
                stage='fill_small_holes', context={name: value}
            )

    closed = close(mask, close_radius)
    holes = fill_holes(closed) & ~closed

    labels, num_holes = label_components(holes)
    if num_holes == 0:
        return closed

    min_large = int(np.ceil(radius_to_measure(max_hole_radius, mask.ndim)))
    sizes = component_sizes(labels, num_holes)

    small = np.zeros(num_holes + 1, dtype=bool)
    small[1:] = sizes < min_large
    return closed | small[labels]


def _check_axes(sweep_axes: Sequence[int], ndim: int) -> tuple:
    try:
        axes = tuple(sweep_axes)
    except TypeError:
        axes = ()
    valid = all(
        isinstance(a, Integral) and not isinstance(a, bool) and 1 <= a <= ndim
        for a in axes
    )
    if not axes or not valid or len(set(axes)) != len(axes):
        raise ConfigurationError(
            f"sweep_axes must be distinct axes in 1..{ndim}",
            stage='fill_all_holes', context={'sweep_axes': sweep_axes}
        )
    return axes


def fill_all_holes(
    mask: np.ndarray,
    dilation_size: int = 3,
    sweep_axes: Sequence[int] = (1, 2, 3),
    progress: bool = False
) -> np.ndarray:
    """Fill all holes by sweeping 2D hole filling over slices.

    1. Dilate by ``dilation_size`` so gaps in the outer boundary do not
       let the slice fill leak.
    2. For each axis in ``sweep_axes`` (1-based), fill the holes of every
       2D slice perpendicular to that axis.
    3. Erode by ``dilation_size`` to restore the boundary position.

    For 2D masks the sweep reduces to a single 2D fill.

    Args:
        mask: 2D or 3D boolean mask
        dilation_size: Dilation/erosion radius in voxels (>= 0)
        sweep_axes: Axes (1-based) to sweep over
        progress: Show a progress bar over slices

    Returns:
        New boolean mask
    """
    check_mask(mask)
    if not isinstance(dilation_size, Integral) or isinstance(dilation_size, bool) \
            or dilation_size < 0:
        raise ConfigurationError(
            "dilation_size must be a non-negative integer",
            stage='fill_all_holes', context={'dilation_size': dilation_size}
        )
    axes = _check_axes(sweep_axes, mask.ndim)

    filled = dilate(mask, dilation_size)

    if mask.ndim == 2:
        filled = fill_holes(filled)
    else:
        total = sum(filled.shape[a - 1] for a in axes)
        pbar = tqdm(total=total, desc='Filling holes', disable=not progress)
        for axis in axes:
            # Moved view of the private buffer; slice writes land in ``filled``
            planes = np.moveaxis(filled, axis - 1, 0)
            for index in range(planes.shape[0]):
                planes[index] = fill_holes(planes[index])
                pbar.update(1)
        pbar.close()

    return erode(filled, dilation_size)
