"""Mask editing utilities."""

from .mask_editor import MaskEditor, ORIENTATION_AXES

__all__ = [
    'MaskEditor',
    'ORIENTATION_AXES'
]
