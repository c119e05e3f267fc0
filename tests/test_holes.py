"""Tests for small-hole and full-hole filling."""

import pytest
import numpy as np

from pseudoct.errors import ConfigurationError
from pseudoct.preprocessing.holes import fill_holes, fill_small_holes, fill_all_holes
from pseudoct.sim.phantom import radial_distance, sphere_mask


def cube_with_cavity(size=50, radius=6):
    """Solid cube with a centred spherical cavity."""
    mask = np.ones((size, size, size), dtype=bool)
    cavity = sphere_mask(mask.shape, radius)
    mask[cavity] = False
    return mask, cavity


def hollow_sphere(size=40, inner=10, outer=15):
    r = radial_distance((size, size, size))
    return (r <= outer) & (r > inner)


def test_fill_holes_primitive():
    """Test enclosed background is filled and open background is not."""
    shell = hollow_sphere()
    filled = fill_holes(shell)
    assert filled[20, 20, 20]
    assert not filled[0, 0, 0]
    np.testing.assert_array_equal(filled, sphere_mask(shell.shape, 15))


def test_large_hole_stays_open():
    """Test a radius-6 cavity survives max_hole_radius=5."""
    mask, cavity = cube_with_cavity()
    result = fill_small_holes(mask, close_radius=1, max_hole_radius=5)

    remaining = (~result).sum()
    expected = 4.0 / 3.0 * np.pi * 6 ** 3
    assert abs(remaining - expected) <= 0.1 * expected
    assert not result[25, 25, 25]


def test_large_hole_filled_with_bigger_radius():
    """Test a radius-6 cavity is filled with max_hole_radius=8."""
    mask, _ = cube_with_cavity()
    result = fill_small_holes(mask, close_radius=1, max_hole_radius=8)
    assert result.all()


def test_small_holes_filled_large_kept():
    """Test noise holes are filled while a sinus-sized cavity is kept."""
    mask, cavity = cube_with_cavity(size=50, radius=6)
    noise_holes = [(8, 8, 8), (40, 10, 30), (12, 40, 41)]
    for idx in noise_holes:
        mask[idx] = False

    result = fill_small_holes(mask, close_radius=0, max_hole_radius=3)
    for idx in noise_holes:
        assert result[idx]
    assert not result[25, 25, 25]


def test_small_hole_monotonic():
    """Test small-hole filling never removes input voxels."""
    rng = np.random.default_rng(1)
    mask = rng.random((30, 30, 30)) > 0.4

    for close_radius in (0, 1, 2):
        result = fill_small_holes(mask, close_radius=close_radius, max_hole_radius=3)
        assert not (mask & ~result).any()


def test_small_holes_2d():
    """Test 2D uses the disk area threshold."""
    mask = np.ones((40, 40), dtype=bool)
    hole = radial_distance((40, 40)) <= 3  # 29 pixels
    mask[hole] = False

    kept = fill_small_holes(mask, close_radius=0, max_hole_radius=2)   # threshold 13
    filled = fill_small_holes(mask, close_radius=0, max_hole_radius=4)  # threshold 51

    assert (~kept).sum() == hole.sum()
    assert filled.all()


def test_small_holes_invalid_radius():
    """Test negative radii are rejected."""
    mask, _ = cube_with_cavity(size=20, radius=3)
    with pytest.raises(ConfigurationError):
        fill_small_holes(mask, close_radius=-1, max_hole_radius=3)
    with pytest.raises(ConfigurationError):
        fill_small_holes(mask, close_radius=1, max_hole_radius=-3)


def test_fill_all_holes_hollow_sphere():
    """Test a hollow sphere becomes solid."""
    shell = hollow_sphere()
    result = fill_all_holes(shell, dilation_size=3, sweep_axes=(1, 2, 3))

    assert result[20, 20, 20]
    assert not (shell & ~result).any()
    np.testing.assert_array_equal(fill_holes(result), result)


def test_fill_all_holes_idempotent():
    """Test applying the full-hole filler twice equals applying it once."""
    shell = hollow_sphere()
    shell[20, 20, 20] = True  # Island inside the cavity
    once = fill_all_holes(shell, dilation_size=3)
    twice = fill_all_holes(once, dilation_size=3)
    np.testing.assert_array_equal(once, twice)


def test_fill_all_holes_does_not_mutate_input():
    """Test the input mask is left untouched."""
    shell = hollow_sphere()
    original = shell.copy()
    fill_all_holes(shell, dilation_size=2)
    np.testing.assert_array_equal(shell, original)


def test_sweep_direction():
    """Test holes are only filled in the swept cross-sections."""
    mask = np.zeros((30, 30, 30), dtype=bool)
    r = radial_distance((30, 30), center=(15, 15))
    ring = (r >= 6) & (r <= 9)
    mask[5:25] = ring  # Open-ended tube along the first axis

    across = fill_all_holes(mask, dilation_size=0, sweep_axes=(1,))
    along = fill_all_holes(mask, dilation_size=0, sweep_axes=(2,))

    assert across[15, 15, 15]
    assert not along[15, 15, 15]


def test_fill_all_holes_2d():
    """Test 2D masks are filled with a single 2D fill."""
    r = radial_distance((30, 30))
    ring = (r >= 5) & (r <= 8)
    result = fill_all_holes(ring, dilation_size=1, sweep_axes=(1, 2))
    assert result[15, 15]


def test_fill_all_holes_invalid():
    """Test invalid axes and dilation sizes are rejected."""
    shell = hollow_sphere(size=20, inner=4, outer=7)
    for axes in [(), (0,), (4,), (1, 1)]:
        with pytest.raises(ConfigurationError):
            fill_all_holes(shell, dilation_size=1, sweep_axes=axes)
    with pytest.raises(ConfigurationError):
        fill_all_holes(shell, dilation_size=-1)
    with pytest.raises(ConfigurationError):
        fill_all_holes(shell, dilation_size=1.5)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
