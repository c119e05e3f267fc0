"""Histogram-based intensity normalization for PETRA / ZTE images.

PETRA and ZTE images have no absolute intensity scale. After bias
correction the image histogram shows two clear peaks: a residual
low-level noise peak and the soft-tissue peak. The soft-tissue peak is
located and the volume is rescaled so that it maps to 1.0, following
Wiesinger et al., "Zero TE MR bone imaging in the head", MRM 75(1), 2016.
"""

from dataclasses import dataclass
from numbers import Integral, Real
from typing import Optional, Tuple

import numpy as np
from matplotlib.figure import Figure
from scipy.signal import find_peaks

from ..errors import ConfigurationError, PeakNotFoundError


@dataclass
class HistogramPeaks:
    """Peaks found in an integer-binned intensity histogram.

    Attributes:
        locations: Peak intensities, ordered by descending height
        heights: Peak counts, same order as ``locations``
        bins: Bin centres searched (lowest bin removed)
        counts: Histogram counts for ``bins``
        figure: Diagnostic plot, if one was requested
    """
    locations: np.ndarray
    heights: np.ndarray
    bins: np.ndarray
    counts: np.ndarray
    figure: Optional[Figure] = None

    @property
    def divisor(self) -> float:
        """Intensity of the highest-intensity peak, i.e. the soft-tissue peak."""
        return float(np.max(self.locations))

    def __len__(self) -> int:
        return len(self.locations)


# Bin count above which integer bins are widened
MAX_INTEGER_BINS = 65536


def integer_histogram(volume: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Histogram of finite values with bins centred on integers.

    Bins have unit width unless the value range would need more than
    MAX_INTEGER_BINS of them; the width is then the smallest integer that
    keeps the bin count within that limit.

    Returns:
        counts: Voxel count per bin
        centres: Bin centres
    """
    values = np.asarray(volume, dtype=np.float64).ravel()
    values = values[np.isfinite(values)]
    if values.size == 0:
        return np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.float64)

    lo = np.floor(values.min())
    hi = np.ceil(values.max())
    span = hi - lo + 1
    width = 1.0 if span <= MAX_INTEGER_BINS else np.ceil(span / MAX_INTEGER_BINS)
    n_bins = int(np.ceil(span / width))
    edges = lo - 0.5 + width * np.arange(n_bins + 1)
    counts, edges = np.histogram(values, bins=edges)
    centres = (edges[1:] + edges[:-1]) / 2
    return counts, centres


def _check_params(n_peaks: int, min_peak_distance: float) -> None:
    if not isinstance(n_peaks, Integral) or isinstance(n_peaks, bool) or n_peaks < 1:
        raise ConfigurationError(
            "n_peaks must be a positive integer",
            stage='histogram_normalization', context={'n_peaks': n_peaks}
        )
    if not isinstance(min_peak_distance, Real) or isinstance(min_peak_distance, bool) \
            or not min_peak_distance >= 0:
        raise ConfigurationError(
            "min_peak_distance must be a non-negative number",
            stage='histogram_normalization',
            context={'min_peak_distance': min_peak_distance}
        )


def find_histogram_peaks(
    volume: np.ndarray,
    n_peaks: int = 2,
    min_peak_distance: float = 50.0
) -> HistogramPeaks:
    """Find the tallest peaks of the intensity histogram.

    The lowest-intensity bin (background/air spike) is discarded first.
    Peaks closer than ``min_peak_distance`` to a taller peak are dropped,
    then the ``n_peaks`` tallest remaining peaks are returned.

    Args:
        volume: Bias-corrected image
        n_peaks: Maximum number of peaks to return
        min_peak_distance: Minimum separation between peaks (intensity units)

    Returns:
        HistogramPeaks, possibly empty
    """
    _check_params(n_peaks, min_peak_distance)

    counts, bins = integer_histogram(volume)
    counts = counts[1:]
    bins = bins[1:]

    width = bins[1] - bins[0] if len(bins) > 1 else 1.0
    distance = min_peak_distance / width
    if distance < 1:
        distance = None
    indices, _ = find_peaks(counts, distance=distance)

    heights = counts[indices]
    order = np.argsort(-heights, kind='stable')[:n_peaks]
    indices = indices[order]

    return HistogramPeaks(
        locations=bins[indices],
        heights=counts[indices],
        bins=bins,
        counts=counts
    )


def plot_histogram(
    peaks: HistogramPeaks,
    path: Optional[str] = None,
    title: str = 'Image Histogram'
) -> Figure:
    """Plot the histogram with a vertical line at each located peak.

    If the last line does not intersect the soft-tissue peak, increase
    ``n_peaks`` and ``min_peak_distance``.

    Args:
        peaks: Output of find_histogram_peaks
        path: Optional path to save the figure to
        title: Axes title

    Returns:
        The matplotlib Figure
    """
    fig = Figure(figsize=(8, 4))
    ax = fig.add_subplot(1, 1, 1)
    ax.plot(peaks.bins, peaks.counts, color='tab:blue', linewidth=1)
    for location in peaks.locations:
        ax.axvline(location, color='k', linestyle='--', linewidth=1)
    ax.set_xlabel('ZTE Value')
    ax.set_ylabel('Count')
    ax.set_title(title)

    if path is not None:
        fig.savefig(path, dpi=100, bbox_inches='tight')
    return fig


def normalize_by_histogram_peak(
    volume: np.ndarray,
    n_peaks: int = 2,
    min_peak_distance: float = 50.0,
    plot: bool = False,
    plot_path: Optional[str] = None
) -> Tuple[np.ndarray, HistogramPeaks]:
    """Rescale a PETRA/ZTE image so the soft-tissue peak maps to 1.0.

    The divisor is the peak with the largest intensity among the
    ``n_peaks`` tallest peaks, not the tallest peak: the noise peak is
    usually taller but sits at a lower intensity than soft tissue.

    Args:
        volume: Bias-corrected image
        n_peaks: Number of histogram peaks to find
        min_peak_distance: Minimum distance between peaks (intensity units)
        plot: Produce a diagnostic histogram plot
        plot_path: Where to save the plot (implies ``plot``)

    Returns:
        normalized: float32 volume divided by the soft-tissue peak intensity
        peaks: Peaks used for normalization
    """
    peaks = find_histogram_peaks(volume, n_peaks, min_peak_distance)

    if plot or plot_path is not None:
        peaks.figure = plot_histogram(peaks, path=plot_path)

    context = {'n_peaks': n_peaks, 'min_peak_distance': min_peak_distance}
    if len(peaks) == 0:
        raise PeakNotFoundError(
            "No histogram peak found; adjust n_peaks / min_peak_distance",
            stage='histogram_normalization', context=context
        )
    if peaks.divisor <= 0:
        raise PeakNotFoundError(
            "Soft-tissue peak must have a positive intensity",
            stage='histogram_normalization',
            context={**context, 'divisor': peaks.divisor}
        )

    normalized = np.asarray(volume, dtype=np.float32) / np.float32(peaks.divisor)
    return normalized, peaks
