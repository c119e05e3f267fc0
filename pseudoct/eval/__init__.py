"""Evaluation metrics for pseudo-CT quality assessment."""

from .metrics import (
    compute_psnr,
    compute_ssim,
    compute_hu_mae,
    dice_coefficient,
    mask_summary,
    evaluate_pseudo_ct,
    print_metrics
)

__all__ = [
    'compute_psnr',
    'compute_ssim',
    'compute_hu_mae',
    'dice_coefficient',
    'mask_summary',
    'evaluate_pseudo_ct',
    'print_metrics'
]
