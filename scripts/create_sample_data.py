#!/usr/bin/env python3
"""Create synthetic PETRA-like sample data for testing the pipeline without SPM12.

Writes a phantom image and its tissue probability maps for each sample.
"""

import argparse
import numpy as np
from pathlib import Path
import sys

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pseudoct.io.nifti_io import write_nifti
from pseudoct.sim.phantom import create_petra_like_phantom


def main():
    parser = argparse.ArgumentParser(description='Create synthetic PETRA sample data')
    parser.add_argument(
        '--output-dir',
        type=str,
        default='./data/samples',
        help='Output directory for sample NIfTI files'
    )
    parser.add_argument(
        '--num-samples',
        type=int,
        default=3,
        help='Number of sample volumes to generate'
    )
    parser.add_argument(
        '--shape',
        type=int,
        nargs=3,
        default=[96, 96, 96],
        help='Volume shape'
    )
    parser.add_argument(
        '--spacing',
        type=float,
        nargs=3,
        default=[1.0, 1.0, 1.0],
        help='Voxel spacing (sx sy sz) in mm'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=0,
        help='Random seed of the first sample'
    )

    args = parser.parse_args()

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 70)
    print("Synthetic PETRA Sample Generator")
    print("=" * 70)
    print(f"Output directory: {output_dir}")
    print(f"Number of samples: {args.num_samples}")
    print(f"Volume shape: {args.shape}")
    print(f"Spacing: {args.spacing} mm")
    print("=" * 70)
    print()

    size = min(args.shape)
    for i in range(args.num_samples):
        sample_id = f"SAMPLE-{i+1:04d}"
        print(f"Generating {sample_id}...")

        volume, probabilities = create_petra_like_phantom(
            shape=tuple(args.shape),
            head_radius=0.42 * size,
            skull_outer_radius=0.375 * size,
            skull_inner_radius=0.31 * size,
            foramen_radius=0.0625 * size,
            seed=args.seed + i
        )

        sample_dir = output_dir / sample_id
        prob_dir = sample_dir / 'probabilities'
        prob_dir.mkdir(parents=True, exist_ok=True)

        image_path = sample_dir / f"{sample_id}.nii.gz"
        write_nifti(volume, str(image_path), tuple(args.spacing))
        write_nifti(probabilities.bone, str(prob_dir / 'bone.nii.gz'), tuple(args.spacing))
        write_nifti(probabilities.soft_tissue, str(prob_dir / 'soft_tissue.nii.gz'),
                    tuple(args.spacing))
        write_nifti(probabilities.background, str(prob_dir / 'background.nii.gz'),
                    tuple(args.spacing))

        print(f"  Saved to {image_path}")
        print(f"    Shape: {volume.shape}")
        print(f"    Intensity range: [{volume.min():.1f}, {volume.max():.1f}]")
        print(f"    Bone voxels: {int(np.count_nonzero(probabilities.bone > 0.5)):,}")
        print()

    print("=" * 70)
    print(f"Generated {args.num_samples} synthetic samples")
    print("=" * 70)
    print()
    print("Next steps:")
    print("   python scripts/convert_petra.py \\")
    print(f"     {output_dir}/SAMPLE-0001/SAMPLE-0001.nii.gz \\")
    print(f"     --probabilities-dir {output_dir}/SAMPLE-0001/probabilities \\")
    print("     --save-masks --plot-histogram")
    print()


if __name__ == '__main__':
    main()
