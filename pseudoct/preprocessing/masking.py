"""Head and skull mask refinement from tissue probability maps."""

import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from matplotlib.figure import Figure

from ..config import MaskRefinementConfig
from ..errors import (
    ConfigurationError,
    EmptyMaskError,
    EmptyMaskWarning,
    ShapeMismatchError,
)
from ..segmentation.provider import TissueProbabilities
from .components import select_largest_components
from .holes import fill_all_holes, fill_small_holes


MASK_PLOT_TITLE = 'SPM Masks / Thresholded Masks / Filled Masks'


@dataclass
class RefinedMasks:
    """Clean binary head and skull masks.

    Attributes:
        head_mask: Whole-head mask, no internal holes
        skull_mask: Bone mask with small holes filled
        empty_masks: Names of masks that ended up with zero voxels
        figure: Probability / thresholded / filled comparison, if plotted
    """
    head_mask: np.ndarray
    skull_mask: np.ndarray
    empty_masks: List[str] = field(default_factory=list)
    figure: Optional[Figure] = None


def threshold_probability(probability: np.ndarray, threshold: float) -> np.ndarray:
    """Binary mask of voxels whose probability exceeds ``threshold``."""
    if not 0 <= threshold <= 1:
        raise ConfigurationError(
            "threshold must be a probability in [0, 1]",
            stage='threshold', context={'threshold': threshold}
        )
    return np.asarray(probability) > threshold


def threshold_largest(
    probability: np.ndarray,
    threshold: float,
    component_count: int = 1
) -> np.ndarray:
    """Threshold a probability map and keep its largest connected bodies."""
    mask = threshold_probability(probability, threshold)
    return select_largest_components(mask, component_count)


def refine_head_mask(
    probability: np.ndarray,
    threshold: float = 0.5,
    dilation_size: int = 3,
    sweep_axes: Sequence[int] = (1, 2, 3),
    component_count: int = 1,
    progress: bool = False
) -> np.ndarray:
    """Threshold, keep the largest body and fill every hole of the head.

    Args:
        probability: Soft-tissue probability map
        threshold: Probability cutoff
        dilation_size: Safety margin for the slice-sweep hole filling
        sweep_axes: Axes (1-based) swept by the hole filling
        component_count: Number of connected components to keep
        progress: Show a progress bar during hole filling

    Returns:
        Boolean head mask
    """
    mask = threshold_largest(probability, threshold, component_count)
    return fill_all_holes(mask, dilation_size, sweep_axes, progress=progress)


def refine_skull_mask(
    probability: np.ndarray,
    threshold: float = 0.5,
    close_radius: float = 2.0,
    max_hole_radius: float = 100.0,
    component_count: int = 1
) -> np.ndarray:
    """Threshold, keep the largest body and fill small holes of the skull.

    Args:
        probability: Bone probability map
        threshold: Probability cutoff
        close_radius: Closing radius applied before hole detection
        max_hole_radius: Holes at least this large (sinuses) stay open
        component_count: Number of connected components to keep

    Returns:
        Boolean skull mask
    """
    mask = threshold_largest(probability, threshold, component_count)
    return fill_small_holes(mask, close_radius, max_hole_radius)


def plot_masks(
    head_stages: Sequence[np.ndarray],
    skull_stages: Sequence[np.ndarray],
    path: Optional[str] = None,
    slice_index: Optional[int] = None,
    title: str = MASK_PLOT_TITLE
) -> Figure:
    """Show the probability map, thresholded mask and filled mask side by side.

    Args:
        head_stages: Soft-tissue probability, thresholded head, filled head
        skull_stages: Bone probability, thresholded skull, filled skull
        path: Optional path to save the figure to
        slice_index: Slice along the last axis (default: middle slice)
        title: Figure title

    Returns:
        The matplotlib Figure
    """
    if slice_index is None:
        slice_index = np.shape(head_stages[0])[-1] // 2

    fig = Figure(figsize=(9, 6))
    columns = ('SPM', 'Thresholded', 'Filled')
    for row, (name, stages) in enumerate((('Head', head_stages), ('Skull', skull_stages))):
        for col, stage in enumerate(stages):
            ax = fig.add_subplot(2, 3, 3 * row + col + 1)
            image = np.asarray(stage, dtype=np.float32)[:, :, slice_index]
            ax.imshow(image.T, cmap='gray', origin='lower', vmin=0, vmax=1)
            ax.set_title(f'{name}: {columns[col]}', fontsize=9)
            ax.axis('off')
    fig.suptitle(title)

    if path is not None:
        fig.savefig(path, dpi=100, bbox_inches='tight')
    return fig


def check_shape(array: np.ndarray, reference_shape: Tuple[int, ...], name: str) -> None:
    """Raise ShapeMismatchError if ``array`` does not have the reference shape."""
    if tuple(np.shape(array)) != tuple(reference_shape):
        raise ShapeMismatchError(
            f"{name} shape does not match the reference volume",
            stage='mask_refinement',
            context={'class': name, 'shape': tuple(np.shape(array)),
                     'expected': tuple(reference_shape)}
        )


def refine_masks(
    probabilities: TissueProbabilities,
    reference_shape: Tuple[int, ...],
    config: Optional[MaskRefinementConfig] = None,
    verbose: bool = False,
    plot_path: Optional[str] = None
) -> RefinedMasks:
    """Turn soft-tissue and bone probability maps into head and skull masks.

    Head and skull refinement are independent and run on two threads
    when ``config.parallel`` is set. With ``config.mask_plot`` the
    intermediate masks are kept for a comparison figure.

    Args:
        probabilities: Per-class probability maps from the segmentation
        reference_shape: Shape of the image being converted
        config: Mask refinement parameters (defaults if None)
        verbose: Print progress
        plot_path: Where to save the mask figure; overrides
            ``config.mask_plot_path``

    Returns:
        RefinedMasks
    """
    config = config or MaskRefinementConfig()
    config.validate()

    check_shape(probabilities.soft_tissue, reference_shape, 'soft_tissue')
    check_shape(probabilities.bone, reference_shape, 'bone')

    def head():
        mask = threshold_largest(
            probabilities.soft_tissue, config.head_threshold, config.component_count
        )
        filled = fill_all_holes(
            mask,
            config.head_dilation_size,
            config.head_sweep_axes,
            progress=verbose and not config.parallel
        )
        return mask, filled

    def skull():
        mask = threshold_largest(
            probabilities.bone, config.skull_threshold, config.component_count
        )
        filled = fill_small_holes(
            mask, config.skull_close_radius, config.skull_max_hole_radius
        )
        return mask, filled

    if config.parallel:
        with ThreadPoolExecutor(max_workers=2) as executor:
            head_future = executor.submit(head)
            skull_future = executor.submit(skull)
            head_raw, head_mask = head_future.result()
            skull_raw, skull_mask = skull_future.result()
    else:
        head_raw, head_mask = head()
        skull_raw, skull_mask = skull()

    empty = [name for name, mask in (('head', head_mask), ('skull', skull_mask))
             if not mask.any()]
    for name in empty:
        if not config.allow_empty_masks:
            raise EmptyMaskError(
                f"Refined {name} mask is empty",
                stage='mask_refinement',
                context={'class': name,
                         'threshold': getattr(config, f'{name}_threshold')}
            )
        warnings.warn(
            f"Refined {name} mask is empty; it will be mapped as background",
            EmptyMaskWarning,
            stacklevel=2
        )

    if verbose:
        print(f"  Head voxels:   {int(head_mask.sum()):,}")
        print(f"  Skull voxels:  {int(skull_mask.sum()):,}")

    figure = None
    if config.mask_plot:
        figure = plot_masks(
            (probabilities.soft_tissue, head_raw, head_mask),
            (probabilities.bone, skull_raw, skull_mask),
            path=plot_path or config.mask_plot_path
        )

    return RefinedMasks(head_mask=head_mask, skull_mask=skull_mask,
                        empty_masks=empty, figure=figure)
