#!/usr/bin/env python3
"""Convert a PETRA head image to a pseudo-CT.

Steps:
    1. Debias (optional, N4ITK through 3D Slicer)
    2. Head and skull masks from SPM12 class images or probability maps
    3. Histogram normalization
    4. Pseudo-CT generation
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from pseudoct.config import (
    CALIBRATIONS,
    ConversionConfig,
    get_calibration,
    load_config,
)
from pseudoct.conversion import PseudoCTConverter
from pseudoct.errors import PseudoCTError
from pseudoct.eval import evaluate_pseudo_ct, print_metrics
from pseudoct.io.debias import debias
from pseudoct.io.nifti_io import read_nifti
from pseudoct.segmentation import ArrayProvider, SPM12FileProvider, TissueProbabilities


def load_probability_dir(prob_dir: str) -> TissueProbabilities:
    """Load bone/soft-tissue/background maps named <class>.nii.gz from a directory."""
    prob_dir = Path(prob_dir)

    def load(name, required=True):
        path = prob_dir / f"{name}.nii.gz"
        if not path.exists():
            if required:
                raise FileNotFoundError(f"Missing probability map: {path}")
            return None
        return read_nifti(str(path), return_spacing=False)

    return TissueProbabilities(
        bone=load('bone'),
        soft_tissue=load('soft_tissue'),
        background=load('background', required=False)
    )


def main():
    parser = argparse.ArgumentParser(description='Convert PETRA image to pseudo-CT')
    parser.add_argument('input', type=str, help='Input PETRA NIfTI file')
    parser.add_argument('output', type=str, nargs='?', default=None,
                        help='Output pseudo-CT path (default: <input>-pct.nii.gz)')
    parser.add_argument('--config', type=str, default=None,
                        help='YAML configuration file')
    parser.add_argument('--calibration', type=str, default=None,
                        choices=sorted(CALIBRATIONS),
                        help='Calibration revision')
    parser.add_argument('--debias', action='store_true',
                        help='Run N4ITK bias correction through Slicer first')
    parser.add_argument('--slicer', type=str, default=None,
                        help='Slicer executable (default: Slicer on PATH)')
    parser.add_argument('--probabilities-dir', type=str, default=None,
                        help='Directory with bone/soft_tissue/background .nii.gz maps '
                             '(default: SPM12 c4/c5/c6 images beside the input)')
    parser.add_argument('--segmentation-dir', type=str, default=None,
                        help='Move SPM12 outputs here as spm_bone_seg.nii etc. '
                             'and read them from there')
    parser.add_argument('--delete-segmentation', action='store_true',
                        help='Delete SPM12 class images after loading')
    parser.add_argument('--head-threshold', type=float, default=None)
    parser.add_argument('--skull-threshold', type=float, default=None)
    parser.add_argument('--head-dilation-size', type=int, default=None)
    parser.add_argument('--head-sweep-axes', type=int, nargs='+', default=None)
    parser.add_argument('--skull-close-radius', type=float, default=None)
    parser.add_argument('--skull-max-hole-radius', type=float, default=None)
    parser.add_argument('--n-peaks', type=int, default=None)
    parser.add_argument('--min-peak-distance', type=float, default=None)
    parser.add_argument('--plot-histogram', action='store_true',
                        help='Save a histogram plot next to the output')
    parser.add_argument('--plot-masks', action='store_true',
                        help='Save a probability / thresholded / filled mask comparison')
    parser.add_argument('--save-masks', action='store_true',
                        help='Save head and skull masks next to the output')
    parser.add_argument('--parallel', action='store_true',
                        help='Refine head and skull masks in parallel')
    parser.add_argument('--reference-ct', type=str, default=None,
                        help='Co-registered CT to evaluate the pseudo-CT against')

    args = parser.parse_args()

    config = load_config(args.config) if args.config else ConversionConfig()
    if args.calibration:
        config.calibration = get_calibration(args.calibration)

    overrides = {
        'head_threshold': args.head_threshold,
        'skull_threshold': args.skull_threshold,
        'head_dilation_size': args.head_dilation_size,
        'head_sweep_axes': tuple(args.head_sweep_axes) if args.head_sweep_axes else None,
        'skull_close_radius': args.skull_close_radius,
        'skull_max_hole_radius': args.skull_max_hole_radius,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config.masks, key, value)
    if args.parallel:
        config.masks.parallel = True
    if args.n_peaks is not None:
        config.histogram.n_peaks = args.n_peaks
    if args.min_peak_distance is not None:
        config.histogram.min_peak_distance = args.min_peak_distance
    if args.plot_histogram:
        config.histogram.plot = True
    if args.plot_masks:
        config.masks.mask_plot = True
    if args.segmentation_dir:
        config.segmentation_output_dir = args.segmentation_dir
    if args.save_masks:
        config.save_masks = True
    config.verbose = True

    print("=" * 60)
    print("PETRA to Pseudo-CT Conversion")
    print("=" * 60)
    print(f"Input:           {args.input}")
    print(f"Output:          {args.output or '<input>-pct'}")
    print(f"Calibration:     {config.calibration.name} "
          f"(slope {config.calibration.slope}, intercept {config.calibration.intercept})")
    print(f"Segmentation:    {args.probabilities_dir or 'SPM12 class images'}")
    print("=" * 60 + "\n")

    try:
        input_path = args.input
        if args.debias:
            print("Debiasing input image...")
            input_path = debias(input_path, slicer=args.slicer, verbose=True)
            print(f"  Debiased image: {input_path}\n")

        if args.probabilities_dir:
            provider = ArrayProvider(load_probability_dir(args.probabilities_dir))
        else:
            provider = SPM12FileProvider(
                input_path,
                delete_segmentation=args.delete_segmentation,
                output_dir=config.segmentation_output_dir
            )

        converter = PseudoCTConverter(config, provider)
        output_path = converter.convert_file(input_path, args.output)

        metrics = None
        if args.reference_ct:
            pseudo_ct = read_nifti(output_path, return_spacing=False)
            reference = read_nifti(args.reference_ct, return_spacing=False)
            metrics = evaluate_pseudo_ct(pseudo_ct, reference)
    except (PseudoCTError, FileNotFoundError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)

    print("\n" + "=" * 60)
    print("Conversion complete!")
    print("=" * 60)
    print(f"Pseudo-CT: {output_path}\n")

    if metrics is not None:
        print_metrics(metrics)


if __name__ == '__main__':
    main()
