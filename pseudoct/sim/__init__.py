"""Synthetic phantoms for pipeline testing."""

from .phantom import sphere_mask, create_head_phantom, create_petra_like_phantom

__all__ = [
    'sphere_mask',
    'create_head_phantom',
    'create_petra_like_phantom'
]
