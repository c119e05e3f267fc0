"""Tests for the undoable mask editor."""

import pytest
import numpy as np

from pseudoct.editing import MaskEditor
from pseudoct.errors import ConfigurationError


def test_paint_disk_on_axial_slice():
    """Test a disk is painted on a single axial slice."""
    editor = MaskEditor(np.zeros((10, 10, 10), dtype=np.uint8))
    result = editor.paint(slice_index=4, center=(5, 5), radius=1, value=1)

    assert result[:, :, 4].sum() == 5
    assert result.sum() == 5
    assert result[5, 5, 4] == 1
    assert result[4, 5, 4] == 1


def test_orientations():
    """Test coronal and sagittal slices are perpendicular to their axes."""
    editor = MaskEditor(np.zeros((6, 7, 8), dtype=bool))

    coronal = editor.paint(3, center=(2, 2), radius=0, value=True, orientation='coronal')
    assert coronal[2, 3, 2]

    sagittal = editor.paint(1, center=(4, 5), radius=0, value=True, orientation='sagittal')
    assert sagittal[1, 4, 5]
    assert sagittal.sum() == 2


def test_undo_redo():
    """Test undo and redo move through the snapshots."""
    original = np.zeros((5, 5, 5), dtype=np.uint8)
    editor = MaskEditor(original)

    first = editor.paint(0, (2, 2), 0, value=1)
    second = editor.paint(1, (2, 2), 0, value=2)

    assert editor.undo() is first
    assert editor.undo().sum() == 0
    assert not editor.can_undo
    assert editor.undo().sum() == 0

    assert editor.redo() is first
    assert editor.redo() is second
    assert not editor.can_redo


def test_new_edit_clears_redo():
    """Test painting after an undo discards the redo history."""
    editor = MaskEditor(np.zeros((5, 5, 5), dtype=np.uint8))
    editor.paint(0, (2, 2), 0)
    editor.undo()
    editor.paint(3, (1, 1), 0)
    assert not editor.can_redo


def test_snapshots_are_read_only():
    """Test snapshots cannot be modified and the input is copied."""
    original = np.zeros((5, 5, 5), dtype=np.uint8)
    editor = MaskEditor(original)
    editor.paint(0, (2, 2), 1)

    assert original.sum() == 0
    with pytest.raises(ValueError):
        editor.current[0, 0, 0] = 1


def test_reset_and_history_limit():
    """Test reset restores the original and history is bounded."""
    editor = MaskEditor(np.zeros((5, 5, 5), dtype=np.uint8), max_history=2)
    for i in range(4):
        editor.paint(i, (2, 2), 0)

    assert editor.reset().sum() == 0
    assert editor.undo().sum() == 4
    editor.undo()
    assert not editor.can_undo


def test_invalid_edits():
    """Test invalid paint arguments are rejected."""
    editor = MaskEditor(np.zeros((5, 5, 5), dtype=np.uint8))
    with pytest.raises(ConfigurationError):
        editor.paint(0, (2, 2), 1, orientation='oblique')
    with pytest.raises(ConfigurationError):
        editor.paint(5, (2, 2), 1)
    with pytest.raises(ConfigurationError):
        editor.paint(0, (2, 2), -1)
    with pytest.raises(ConfigurationError):
        MaskEditor(np.zeros((5, 5)))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
