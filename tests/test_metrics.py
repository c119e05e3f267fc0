"""Tests for pseudo-CT evaluation metrics."""

import pytest
import numpy as np

from pseudoct.errors import ShapeMismatchError
from pseudoct.eval import (
    compute_hu_mae,
    compute_psnr,
    compute_ssim,
    dice_coefficient,
    evaluate_pseudo_ct,
    mask_summary,
)


def make_pair(shape=(16, 16, 8)):
    rng = np.random.default_rng(0)
    target = rng.uniform(-1000, 1500, size=shape)
    pred = target + 10.0
    return pred, target


def test_hu_mae():
    """Test MAE of a constant offset."""
    pred, target = make_pair()
    assert compute_hu_mae(pred, target) == pytest.approx(10.0)

    mask = np.zeros(pred.shape, dtype=bool)
    assert np.isnan(compute_hu_mae(pred, target, mask))


def test_psnr():
    """Test PSNR is infinite for identical volumes and finite otherwise."""
    pred, target = make_pair()
    assert compute_psnr(target, target) == float('inf')

    expected = 20 * np.log10(4095.0 / 10.0)
    assert compute_psnr(pred, target) == pytest.approx(expected, rel=1e-3)


def test_ssim():
    """Test SSIM of identical volumes is one."""
    _, target = make_pair()
    assert compute_ssim(target, target) == pytest.approx(1.0)


def test_dice():
    """Test Dice overlap."""
    a = np.zeros((4, 4, 4), dtype=bool)
    b = np.zeros((4, 4, 4), dtype=bool)
    assert dice_coefficient(a, b) == 1.0

    a[:2] = True
    b[1:3] = True
    assert dice_coefficient(a, b) == pytest.approx(0.5)


def test_mask_summary():
    """Test voxel count and volume in ml."""
    mask = np.zeros((10, 10, 10), dtype=bool)
    mask[:5] = True
    summary = mask_summary(mask, spacing=(2.0, 1.0, 1.0))

    assert summary['voxels'] == 500
    assert summary['fraction'] == 0.5
    assert summary['volume_ml'] == pytest.approx(1.0)


def test_evaluate_pseudo_ct():
    """Test the combined report includes the bone MAE when a skull mask is given."""
    pred, target = make_pair()
    skull = np.zeros(pred.shape, dtype=bool)
    skull[4:8, 4:8, :] = True

    metrics = evaluate_pseudo_ct(pred, target, skull_mask=skull)
    assert set(metrics) == {'psnr', 'ssim', 'hu_mae', 'bone_hu_mae'}
    assert metrics['bone_hu_mae'] == pytest.approx(10.0)


def test_shape_mismatch():
    """Test volumes of different shapes are rejected."""
    with pytest.raises(ShapeMismatchError):
        compute_hu_mae(np.zeros((4, 4, 4)), np.zeros((4, 4, 5)))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
