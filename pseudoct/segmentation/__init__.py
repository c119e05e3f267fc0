"""Tissue segmentation collaborators."""

from .provider import (
    TissueProbabilities,
    SegmentationMethod,
    SegmentationProvider,
    ArrayProvider,
    SPM12FileProvider,
    create_provider
)

__all__ = [
    'TissueProbabilities',
    'SegmentationMethod',
    'SegmentationProvider',
    'ArrayProvider',
    'SPM12FileProvider',
    'create_provider'
]
