"""Metrics comparing a pseudo-CT against a paired reference CT."""

from typing import Dict, Optional, Tuple

import numpy as np
from skimage.metrics import structural_similarity

from ..errors import ShapeMismatchError

# HU window used to scale PSNR / SSIM
HU_RANGE = (-1024.0, 3071.0)


def _check_pair(pred: np.ndarray, target: np.ndarray) -> None:
    if pred.shape != target.shape:
        raise ShapeMismatchError(
            "Pseudo-CT and reference CT shapes differ",
            stage='evaluation', context={'pred': pred.shape, 'target': target.shape}
        )


def compute_hu_mae(
    pred: np.ndarray,
    target: np.ndarray,
    mask: Optional[np.ndarray] = None
) -> float:
    """Compute Mean Absolute Error in HU units.

    Args:
        pred: Pseudo-CT in HU
        target: Reference CT in HU
        mask: Optional region (e.g. head or skull mask)

    Returns:
        MAE in Hounsfield Units
    """
    _check_pair(pred, target)
    pred = pred.astype(np.float64)
    target = target.astype(np.float64)

    if mask is not None:
        pred = pred[mask]
        target = target[mask]

    if pred.size == 0:
        return float('nan')
    return float(np.mean(np.abs(pred - target)))


def compute_psnr(
    pred: np.ndarray,
    target: np.ndarray,
    mask: Optional[np.ndarray] = None,
    hu_range: Tuple[float, float] = HU_RANGE
) -> float:
    """Compute Peak Signal-to-Noise Ratio over the clipped HU window.

    Returns:
        PSNR in dB
    """
    _check_pair(pred, target)
    lo, hi = hu_range
    pred = np.clip(pred.astype(np.float64), lo, hi)
    target = np.clip(target.astype(np.float64), lo, hi)

    if mask is not None:
        pred = pred[mask]
        target = target[mask]

    mse = np.mean((pred - target) ** 2)
    if mse == 0:
        return float('inf')

    psnr = 20 * np.log10((hi - lo) / np.sqrt(mse))
    return float(psnr)


def compute_ssim(
    pred: np.ndarray,
    target: np.ndarray,
    mask: Optional[np.ndarray] = None,
    hu_range: Tuple[float, float] = HU_RANGE,
    min_mask_voxels: int = 100
) -> float:
    """Compute Structural Similarity Index slice-by-slice along axis 2.

    Slices with fewer than ``min_mask_voxels`` masked voxels are skipped.

    Returns:
        Average SSIM value
    """
    _check_pair(pred, target)
    lo, hi = hu_range
    pred = np.clip(pred.astype(np.float64), lo, hi)
    target = np.clip(target.astype(np.float64), lo, hi)

    win_size = min(7, *pred.shape[:2])
    if win_size % 2 == 0:
        win_size -= 1

    ssim_values = []
    for i in range(pred.shape[2]):
        if mask is not None and mask[:, :, i].sum() < min_mask_voxels:
            continue
        ssim = structural_similarity(
            target[:, :, i],
            pred[:, :, i],
            data_range=hi - lo,
            win_size=win_size
        )
        ssim_values.append(ssim)

    return float(np.mean(ssim_values)) if ssim_values else 0.0


def dice_coefficient(a: np.ndarray, b: np.ndarray) -> float:
    """Dice overlap of two boolean masks (1.0 if both are empty)."""
    _check_pair(a, b)
    total = a.sum() + b.sum()
    if total == 0:
        return 1.0
    return float(2.0 * np.logical_and(a, b).sum() / total)


def mask_summary(
    mask: np.ndarray,
    spacing: Tuple[float, float, float] = (1.0, 1.0, 1.0)
) -> Dict[str, float]:
    """Voxel count and physical volume (ml) of a mask."""
    voxels = int(mask.sum())
    volume_ml = voxels * float(np.prod(spacing)) / 1000.0
    return {
        'voxels': voxels,
        'fraction': voxels / mask.size if mask.size else 0.0,
        'volume_ml': volume_ml
    }


def evaluate_pseudo_ct(
    pred: np.ndarray,
    target: np.ndarray,
    head_mask: Optional[np.ndarray] = None,
    skull_mask: Optional[np.ndarray] = None
) -> Dict[str, float]:
    """Compute all evaluation metrics for a pseudo-CT.

    Args:
        pred: Pseudo-CT in HU
        target: Reference CT in HU, co-registered
        head_mask: Optional head mask restricting the metrics
        skull_mask: Optional skull mask for a bone-only MAE

    Returns:
        Dictionary with all metrics
    """
    metrics = {
        'psnr': compute_psnr(pred, target, head_mask),
        'ssim': compute_ssim(pred, target, head_mask),
        'hu_mae': compute_hu_mae(pred, target, head_mask)
    }
    if skull_mask is not None:
        metrics['bone_hu_mae'] = compute_hu_mae(pred, target, skull_mask)
    return metrics


def print_metrics(metrics: Dict[str, float]):
    """Pretty print evaluation metrics.

    Args:
        metrics: Dictionary of metric values
    """
    print("\n" + "=" * 50)
    print("Evaluation Metrics")
    print("=" * 50)
    print(f"  PSNR:        {metrics['psnr']:.2f} dB")
    print(f"  SSIM:        {metrics['ssim']:.4f}")
    print(f"  HU-MAE:      {metrics['hu_mae']:.2f} HU")
    if 'bone_hu_mae' in metrics:
        print(f"  Bone HU-MAE: {metrics['bone_hu_mae']:.2f} HU")
    print("=" * 50 + "\n")
