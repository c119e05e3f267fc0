"""Headless mask editing with undo/redo.

Models the paint tool used to touch up refined masks before conversion:
every edit produces a new immutable snapshot, and undo/redo move through
the snapshot history.
"""

from typing import List, Tuple

import numpy as np

from ..errors import ConfigurationError

# Axis perpendicular to the displayed slice for each view
ORIENTATION_AXES = {
    'axial': 2,
    'coronal': 1,
    'sagittal': 0,
}


def _freeze(array: np.ndarray) -> np.ndarray:
    array = np.array(array, copy=True)
    array.setflags(write=False)
    return array


class MaskEditor:
    """Paint values into a 3D segmentation one slice at a time.

    Args:
        segmentation: 3D mask or label image to edit
        max_history: Maximum number of undo steps kept
    """

    def __init__(self, segmentation: np.ndarray, max_history: int = 50):
        segmentation = np.asarray(segmentation)
        if segmentation.ndim != 3:
            raise ConfigurationError(
                "Segmentation must be 3D", stage='mask_editor',
                context={'shape': segmentation.shape}
            )
        self._original = _freeze(segmentation)
        self._current = self._original
        self._undo: List[np.ndarray] = []
        self._redo: List[np.ndarray] = []
        self.max_history = max_history

    @property
    def current(self) -> np.ndarray:
        """Current read-only snapshot."""
        return self._current

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def _commit(self, snapshot: np.ndarray) -> np.ndarray:
        self._undo.append(self._current)
        if len(self._undo) > self.max_history:
            self._undo.pop(0)
        self._redo.clear()
        self._current = _freeze(snapshot)
        return self._current

    def paint(
        self,
        slice_index: int,
        center: Tuple[int, int],
        radius: float,
        value=1,
        orientation: str = 'axial'
    ) -> np.ndarray:
        """Set a disk of voxels on one slice to ``value``.

        Args:
            slice_index: Index of the slice along the viewing axis
            center: (row, column) of the disk within the slice
            radius: Disk radius in voxels
            value: Value to paint (cast to the segmentation dtype)
            orientation: 'axial', 'coronal' or 'sagittal'

        Returns:
            The new snapshot
        """
        if orientation not in ORIENTATION_AXES:
            raise ConfigurationError(
                "Unknown orientation", stage='mask_editor',
                context={'orientation': orientation, 'available': list(ORIENTATION_AXES)}
            )
        if radius < 0:
            raise ConfigurationError(
                "radius must be non-negative", stage='mask_editor', context={'radius': radius}
            )
        axis = ORIENTATION_AXES[orientation]
        if not 0 <= slice_index < self._current.shape[axis]:
            raise ConfigurationError(
                "slice_index out of range", stage='mask_editor',
                context={'slice_index': slice_index, 'size': self._current.shape[axis]}
            )

        edited = np.array(self._current, copy=True)
        plane = np.moveaxis(edited, axis, 0)[slice_index]
        rows, cols = np.ogrid[:plane.shape[0], :plane.shape[1]]
        disk = (rows - center[0]) ** 2 + (cols - center[1]) ** 2 <= radius ** 2
        plane[disk] = value
        return self._commit(edited)

    def undo(self) -> np.ndarray:
        if not self._undo:
            return self._current
        self._redo.append(self._current)
        self._current = self._undo.pop()
        return self._current

    def redo(self) -> np.ndarray:
        if not self._redo:
            return self._current
        self._undo.append(self._current)
        self._current = self._redo.pop()
        return self._current

    def reset(self) -> np.ndarray:
        """Return to the original segmentation; the reset itself can be undone."""
        return self._commit(self._original)
