"""Synthetic head phantoms for testing the conversion pipeline.

Generates PETRA-like images together with the tissue probability maps a
segmentation would produce, so the pipeline can run without SPM12.
"""

from typing import Optional, Tuple

import numpy as np
from scipy.ndimage import gaussian_filter

from ..segmentation.provider import TissueProbabilities


def radial_distance(
    shape: Tuple[int, int, int],
    center: Optional[Tuple[float, float, float]] = None
) -> np.ndarray:
    """Euclidean distance of every voxel from ``center`` (default: array centre)."""
    if center is None:
        center = tuple(s / 2 for s in shape)
    grids = np.ogrid[tuple(slice(0, s) for s in shape)]
    return np.sqrt(sum((g - c) ** 2 for g, c in zip(grids, center)))


def sphere_mask(
    shape: Tuple[int, int, int],
    radius: float,
    center: Optional[Tuple[float, float, float]] = None
) -> np.ndarray:
    """Boolean ball of the given radius."""
    return radial_distance(shape, center) <= radius


def foramen_mask(shape: Tuple[int, int, int], radius: float) -> np.ndarray:
    """Cylinder of ``radius`` around the central last-axis line, lower half only."""
    if radius <= 0:
        return np.zeros(shape, dtype=bool)
    rho = radial_distance(shape[:2])[:, :, np.newaxis]
    lower = (np.arange(shape[2]) < shape[2] / 2)[np.newaxis, np.newaxis, :]
    return (rho <= radius) & lower


def create_head_phantom(
    shape: Tuple[int, int, int] = (64, 64, 64),
    head_radius: float = 20.0,
    skull_radius: float = 10.0,
    intensity: float = 1.0
) -> Tuple[np.ndarray, TissueProbabilities]:
    """Nested solid spheres with uniform intensity and binary probabilities.

    Args:
        shape: Volume shape
        head_radius: Radius of the head sphere (voxels)
        skull_radius: Radius of the skull sphere (voxels)
        intensity: Intensity inside the head

    Returns:
        volume: float32 image, ``intensity`` inside the head, 0 outside
        probabilities: soft tissue = head sphere, bone = skull sphere
    """
    head = sphere_mask(shape, head_radius)
    skull = sphere_mask(shape, skull_radius)

    volume = np.where(head, intensity, 0.0).astype(np.float32)
    probabilities = TissueProbabilities(
        bone=skull.astype(np.float32),
        soft_tissue=head.astype(np.float32),
        background=(~head).astype(np.float32)
    )
    return volume, probabilities


def create_petra_like_phantom(
    shape: Tuple[int, int, int] = (96, 96, 96),
    head_radius: float = 40.0,
    skull_outer_radius: float = 36.0,
    skull_inner_radius: float = 30.0,
    soft_tissue_value: float = 400.0,
    bone_fraction: float = 0.6,
    noise_sigma: float = 25.0,
    num_defects: int = 5,
    foramen_radius: float = 6.0,
    seed: Optional[int] = 0
) -> Tuple[np.ndarray, TissueProbabilities]:
    """PETRA-like head with a bimodal histogram and imperfect probabilities.

    Background has Rayleigh-distributed noise (low-intensity noise peak),
    soft tissue sits at ``soft_tissue_value`` and bone is darker, at
    ``bone_fraction`` of the soft-tissue value. The bone probability map
    contains a few single-voxel defects and the soft-tissue map only covers
    the scalp, as with SPM12 class images.

    The skull shell is open at the bottom (a foramen magnum along the last
    axis), so the brain is not an enclosed hole of the bone mask.

    Args:
        shape: Volume shape
        head_radius: Outer radius of the scalp
        skull_outer_radius: Outer radius of the skull shell
        skull_inner_radius: Inner radius of the skull shell
        soft_tissue_value: Intensity of soft tissue
        bone_fraction: Bone intensity relative to soft tissue
        noise_sigma: Rayleigh scale of the background noise
        num_defects: Number of small holes punched into the bone map
        foramen_radius: Radius of the opening in the skull base (0 for a
            closed shell)
        seed: Random seed

    Returns:
        volume: float32 PETRA-like image
        probabilities: Tissue probability maps
    """
    rng = np.random.default_rng(seed)
    r = radial_distance(shape)

    head = r <= head_radius
    shell = (r <= skull_outer_radius) & (r > skull_inner_radius)
    canal = shell & foramen_mask(shape, foramen_radius)
    bone = shell & ~canal
    scalp = head & (r > skull_outer_radius)
    brain = r <= skull_inner_radius
    soft = scalp | brain | canal

    volume = rng.rayleigh(noise_sigma, size=shape)
    volume[soft] = rng.normal(soft_tissue_value, 20.0, size=int(soft.sum()))
    volume[bone] = rng.normal(soft_tissue_value * bone_fraction, 60.0, size=int(bone.sum()))
    volume = np.clip(volume, 0, None).astype(np.float32)

    bone_prob = bone.astype(np.float32)
    mid = (skull_outer_radius + skull_inner_radius) / 2
    candidates = np.argwhere(bone & (np.abs(r - mid) < 1.0))
    if num_defects > 0 and len(candidates):
        picks = candidates[rng.choice(len(candidates), size=min(num_defects, len(candidates)),
                                      replace=False)]
        bone_prob[tuple(picks.T)] = 0.0

    soft_prob = np.clip(gaussian_filter(scalp.astype(np.float32), sigma=0.5), 0, 1)
    background = np.clip(1.0 - soft_prob - bone_prob - brain, 0, 1).astype(np.float32)

    probabilities = TissueProbabilities(
        bone=bone_prob,
        soft_tissue=soft_prob,
        background=background
    )
    return volume, probabilities
