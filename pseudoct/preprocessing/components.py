"""Connected-component selection for binary tissue masks."""

from numbers import Integral
from typing import Tuple

import numpy as np
from scipy.ndimage import label, generate_binary_structure

from ..errors import ConfigurationError


def check_mask(mask: np.ndarray, name: str = 'mask') -> None:
    """Raise ConfigurationError unless ``mask`` is a 2D or 3D boolean array."""
    if not isinstance(mask, np.ndarray) or mask.dtype != np.bool_:
        raise ConfigurationError(
            f"{name} must be a boolean numpy array",
            context={'dtype': getattr(mask, 'dtype', type(mask).__name__)}
        )
    if mask.ndim not in (2, 3):
        raise ConfigurationError(
            f"{name} must be 2D or 3D", context={'shape': mask.shape}
        )


def label_components(mask: np.ndarray) -> Tuple[np.ndarray, int]:
    """Label face-connected components (4-connected in 2D, 6-connected in 3D).

    Labels are assigned in C scan order, starting at 1.

    Returns:
        labels: Integer label array, 0 for background
        num_components: Number of components found
    """
    structure = generate_binary_structure(mask.ndim, 1)
    labels, num_components = label(mask, structure=structure)
    return labels, int(num_components)


def component_sizes(labels: np.ndarray, num_components: int) -> np.ndarray:
    """Voxel count of each component; index i holds the size of label i + 1."""
    counts = np.bincount(labels.ravel(), minlength=num_components + 1)
    return counts[1:]


def select_largest_components(mask: np.ndarray, count: int = 1) -> np.ndarray:
    """Keep the ``count`` largest connected components of a binary mask.

    Components of equal size are ranked by label order, i.e. by the first
    voxel encountered in C scan order.

    Args:
        mask: 2D or 3D boolean mask
        count: Number of components to retain (>= 1)

    Returns:
        New boolean mask containing only the retained components
    """
    check_mask(mask)
    if not isinstance(count, Integral) or isinstance(count, bool) or count < 1:
        raise ConfigurationError(
            "count must be a positive integer",
            stage='component_selection', context={'count': count}
        )

    labels, num_components = label_components(mask)
    if num_components == 0:
        return np.zeros_like(mask, dtype=bool)

    sizes = component_sizes(labels, num_components)
    order = np.argsort(-sizes, kind='stable')
    keep = order[:count] + 1

    lookup = np.zeros(num_components + 1, dtype=bool)
    lookup[keep] = True
    return lookup[labels]
