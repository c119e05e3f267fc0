"""Mask refinement and intensity normalization for PETRA images."""

from .geometry import radius_to_measure, structuring_element
from .components import select_largest_components, label_components
from .holes import fill_holes, fill_small_holes, fill_all_holes
from .normalization import (
    HistogramPeaks,
    find_histogram_peaks,
    normalize_by_histogram_peak,
    plot_histogram
)
from .masking import RefinedMasks, refine_head_mask, refine_skull_mask, refine_masks, plot_masks

__all__ = [
    'radius_to_measure',
    'structuring_element',
    'select_largest_components',
    'label_components',
    'fill_holes',
    'fill_small_holes',
    'fill_all_holes',
    'HistogramPeaks',
    'find_histogram_peaks',
    'normalize_by_histogram_peak',
    'plot_histogram',
    'RefinedMasks',
    'refine_head_mask',
    'refine_skull_mask',
    'refine_masks',
    'plot_masks'
]
