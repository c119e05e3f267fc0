"""End-to-end PETRA to pseudo-CT conversion.

Pipeline:
    1. Tissue probabilities from a SegmentationProvider
    2. Head and skull mask refinement
    3. Histogram normalization (soft-tissue peak -> 1.0)
    4. Piecewise linear mapping to HU
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import numpy as np
from matplotlib.figure import Figure

from ..config import ConversionConfig
from ..errors import ConfigurationError
from ..io.nifti_io import (
    derive_output_path,
    load_nifti_image,
    split_nifti_name,
    write_mask,
    write_pseudo_ct,
)
from ..preprocessing.masking import refine_masks
from ..preprocessing.normalization import HistogramPeaks, normalize_by_histogram_peak
from ..segmentation.provider import SegmentationProvider, create_provider
from .hu_mapping import map_to_hu_with_calibration


@dataclass
class ConversionResult:
    """Outputs of one conversion run."""
    pseudo_ct: np.ndarray
    head_mask: np.ndarray
    skull_mask: np.ndarray
    normalized: np.ndarray
    peaks: Optional[HistogramPeaks] = None
    empty_masks: List[str] = field(default_factory=list)
    mask_figure: Optional[Figure] = None


class PseudoCTConverter:
    """Converts bias-corrected PETRA images to pseudo-CT volumes."""

    def __init__(
        self,
        config: Optional[ConversionConfig] = None,
        provider: Optional[SegmentationProvider] = None
    ):
        """Initialize converter.

        Args:
            config: Conversion configuration (defaults if None)
            provider: Source of tissue probabilities. ``convert_file``
                falls back to ``config.segmentation_method``
                reading class images beside the input, or from
                ``config.segmentation_output_dir`` when set.
        """
        self.config = config or ConversionConfig()
        self.config.validate()
        self.provider = provider

    def _log(self, message: str) -> None:
        if self.config.verbose:
            print(message)

    def convert(
        self,
        volume: np.ndarray,
        provider: Optional[SegmentationProvider] = None,
        plot_path: Optional[str] = None,
        mask_plot_path: Optional[str] = None
    ) -> ConversionResult:
        """Convert a bias-corrected PETRA volume to pseudo-CT.

        Args:
            volume: 3D bias-corrected image
            provider: Overrides the converter's provider for this call
            plot_path: Where to save the histogram plot, if any
            mask_plot_path: Where to save the mask comparison plot, if any

        Returns:
            ConversionResult
        """
        provider = provider or self.provider
        if provider is None:
            raise ConfigurationError(
                "No segmentation provider configured", stage='conversion'
            )
        volume = np.asarray(volume)
        if volume.ndim != 3:
            raise ConfigurationError(
                "Input image must be 3D", stage='conversion',
                context={'shape': volume.shape}
            )
        if not np.all(np.isfinite(volume)):
            raise ConfigurationError(
                "Input image contains non-finite values", stage='conversion'
            )

        self._log("Segmenting tissues...")
        probabilities = provider.segment(volume)

        self._log("Refining head and skull masks...")
        masks = refine_masks(
            probabilities, volume.shape, self.config.masks, verbose=self.config.verbose,
            plot_path=mask_plot_path
        )

        hist = self.config.histogram
        peaks = None
        if hist.enabled:
            self._log("Normalizing histogram...")
            normalized, peaks = normalize_by_histogram_peak(
                volume,
                n_peaks=hist.n_peaks,
                min_peak_distance=hist.min_peak_distance,
                plot=hist.plot,
                plot_path=plot_path or hist.plot_path
            )
            self._log(f"  Soft-tissue peak: {peaks.divisor:.1f}")
        else:
            normalized = volume.astype(np.float32)

        self._log(f"Mapping to HU (calibration '{self.config.calibration.name}')...")
        pseudo_ct = map_to_hu_with_calibration(
            normalized, masks.head_mask, masks.skull_mask, self.config.calibration
        )
        self._log(f"  HU range: [{pseudo_ct.min()}, {pseudo_ct.max()}]")

        return ConversionResult(
            pseudo_ct=pseudo_ct,
            head_mask=masks.head_mask,
            skull_mask=masks.skull_mask,
            normalized=normalized,
            peaks=peaks,
            empty_masks=masks.empty_masks,
            mask_figure=masks.figure
        )

    def convert_file(
        self,
        input_path: str,
        output_path: Optional[str] = None,
        mask_dir: Optional[str] = None
    ) -> str:
        """Convert a bias-corrected PETRA NIfTI file to a pseudo-CT NIfTI.

        Args:
            input_path: Bias-corrected PETRA image
            output_path: Output path; defaults to ``<name>-pct.nii[.gz]``
            mask_dir: Directory for head/skull masks when ``save_masks``
                is set; defaults to the output directory

        Returns:
            Path of the written pseudo-CT
        """
        if output_path is None:
            output_path = derive_output_path(input_path, '-pct')

        img = load_nifti_image(input_path)
        volume = np.asarray(img.get_fdata(dtype=np.float32))

        provider = self.provider or create_provider(
            self.config.segmentation_method, input_path=input_path,
            output_dir=self.config.segmentation_output_dir
        )

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        stem, _ = split_nifti_name(output_path)
        plot_path = None
        if self.config.histogram.plot:
            plot_path = self.config.histogram.plot_path or \
                str(Path(output_path).parent / f"{stem}-histogram.png")
        mask_plot_path = None
        if self.config.masks.mask_plot:
            mask_plot_path = self.config.masks.mask_plot_path or \
                str(Path(output_path).parent / f"{stem}-masks.png")

        result = self.convert(volume, provider=provider, plot_path=plot_path,
                              mask_plot_path=mask_plot_path)

        write_pseudo_ct(result.pseudo_ct, output_path, img.affine, img.header)
        self._log(f"Saved pseudo-CT to {output_path}")

        if self.config.save_masks:
            mask_dir = Path(mask_dir) if mask_dir else Path(output_path).parent
            mask_dir.mkdir(parents=True, exist_ok=True)
            for name, mask in (('head', result.head_mask), ('skull', result.skull_mask)):
                mask_path = mask_dir / f"{name}_mask.nii.gz"
                write_mask(mask, str(mask_path), img.affine, img.header,
                           description=f"{name} mask")
                self._log(f"Saved {name} mask to {mask_path}")

        return output_path
