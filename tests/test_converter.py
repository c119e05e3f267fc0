"""End-to-end tests for PETRA to pseudo-CT conversion."""

import tempfile
from pathlib import Path

import pytest
import numpy as np
import nibabel as nib

from pseudoct.config import ConversionConfig, HistogramConfig, MaskRefinementConfig
from pseudoct.conversion import PseudoCTConverter
from pseudoct.errors import ConfigurationError, SegmentationError
from pseudoct.io.nifti_io import write_nifti
from pseudoct.segmentation import ArrayProvider
from pseudoct.sim.phantom import (
    create_head_phantom,
    create_petra_like_phantom,
    foramen_mask,
    radial_distance,
)


def test_nested_spheres_without_normalization():
    """Test the three HU classes on nested spheres of uniform intensity."""
    volume, probabilities = create_head_phantom(
        shape=(64, 64, 64), head_radius=20, skull_radius=10, intensity=1.0
    )
    config = ConversionConfig(histogram=HistogramConfig(enabled=False))
    converter = PseudoCTConverter(config, ArrayProvider(probabilities))

    result = converter.convert(volume)
    pct = result.pseudo_ct
    r = radial_distance(volume.shape)

    assert pct.dtype == np.int16
    assert pct.shape == volume.shape
    assert set(np.unique(pct)) <= {-1000, 42, 345}
    assert (pct[r > 21] == -1000).all()
    assert (pct[(r > 11) & (r < 19)] == 42).all()
    assert (pct[r < 9] == 345).all()

    expected = np.full(volume.shape, -1000, dtype=np.int16)
    expected[r <= 20] = 42
    expected[r <= 10] = 345
    np.testing.assert_array_equal(pct, expected)
    assert result.peaks is None


def test_petra_phantom():
    """Test normalization and mapping on a PETRA-like phantom."""
    volume, probabilities = create_petra_like_phantom(seed=0)
    converter = PseudoCTConverter(provider=ArrayProvider(probabilities))

    result = converter.convert(volume)
    pct = result.pseudo_ct
    r = radial_distance(volume.shape)
    shell = (r <= 36) & (r > 30) & ~foramen_mask(volume.shape, 6.0)

    assert 390 <= result.peaks.divisor <= 410
    assert pct[48, 48, 48] == 42
    assert pct[0, 0, 0] == -1000
    assert result.skull_mask[shell].all()
    assert abs(pct[shell].mean() - 1517) < 75
    assert result.empty_masks == []


def test_missing_provider():
    """Test conversion without a segmentation source is rejected."""
    volume, _ = create_head_phantom(shape=(16, 16, 16), head_radius=6, skull_radius=3)
    with pytest.raises(ConfigurationError):
        PseudoCTConverter().convert(volume)


def test_invalid_volume():
    """Test non-3D and non-finite inputs are rejected."""
    volume, probabilities = create_head_phantom(shape=(16, 16, 16), head_radius=6, skull_radius=3)
    converter = PseudoCTConverter(provider=ArrayProvider(probabilities))

    with pytest.raises(ConfigurationError):
        converter.convert(volume[:, :, 0])

    volume[0, 0, 0] = np.nan
    with pytest.raises(ConfigurationError):
        converter.convert(volume)


def write_spm12_outputs(tmpdir, shape=(64, 64, 64)):
    """Write a PETRA phantom and its c4/c5/c6 class images."""
    volume, probabilities = create_petra_like_phantom(
        shape=shape, head_radius=28, skull_outer_radius=24, skull_inner_radius=19,
        num_defects=3, foramen_radius=5.0, seed=1
    )
    spacing = (1.0, 1.0, 1.0)
    input_path = Path(tmpdir) / 'petra.nii.gz'
    write_nifti(volume, str(input_path), spacing)
    write_nifti(probabilities.bone, str(Path(tmpdir) / 'c4petra.nii.gz'), spacing)
    write_nifti(probabilities.soft_tissue, str(Path(tmpdir) / 'c5petra.nii.gz'), spacing)
    write_nifti(probabilities.background, str(Path(tmpdir) / 'c6petra.nii.gz'), spacing)
    return input_path


def test_convert_file():
    """Test file conversion writes an int16 pseudo-CT, masks and plots."""
    config = ConversionConfig(
        save_masks=True,
        histogram=HistogramConfig(plot=True),
        masks=MaskRefinementConfig(mask_plot=True)
    )
    converter = PseudoCTConverter(config)

    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = write_spm12_outputs(tmpdir)
        output_path = converter.convert_file(str(input_path))

        assert output_path == str(Path(tmpdir) / 'petra-pct.nii.gz')
        img = nib.load(output_path)
        assert img.get_data_dtype() == np.int16
        assert img.header['descrip'].item() == b'pseudoCT'
        np.testing.assert_allclose(img.affine, np.eye(4))

        pct = img.get_fdata()
        assert pct[32, 32, 32] == 42
        assert pct[0, 0, 0] == -1000

        head = nib.load(str(Path(tmpdir) / 'head_mask.nii.gz'))
        skull = nib.load(str(Path(tmpdir) / 'skull_mask.nii.gz'))
        assert head.get_data_dtype() == np.uint8
        assert set(np.unique(skull.get_fdata())) == {0.0, 1.0}

        assert (Path(tmpdir) / 'petra-pct-histogram.png').exists()
        assert (Path(tmpdir) / 'petra-pct-masks.png').exists()
        assert (Path(tmpdir) / 'c4petra.nii.gz').exists()


def test_convert_file_segmentation_output_dir():
    """Test SPM12 outputs are collected into the configured directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = write_spm12_outputs(tmpdir)
        seg_dir = Path(tmpdir) / 'spm'
        config = ConversionConfig(segmentation_output_dir=str(seg_dir))
        output_path = PseudoCTConverter(config).convert_file(str(input_path))

        pct = nib.load(output_path).get_fdata()
        assert pct[32, 32, 32] == 42
        assert (seg_dir / 'spm_bone_seg.nii.gz').exists()
        assert (seg_dir / 'spm_soft_tissue_seg.nii.gz').exists()
        assert not (Path(tmpdir) / 'c4petra.nii.gz').exists()


def test_convert_file_missing_segmentation():
    """Test a missing SPM12 class image is reported."""
    volume, _ = create_head_phantom(shape=(16, 16, 16), head_radius=6, skull_radius=3)

    with tempfile.TemporaryDirectory() as tmpdir:
        input_path = Path(tmpdir) / 'petra.nii'
        write_nifti(volume, str(input_path), (1.0, 1.0, 1.0))

        with pytest.raises(SegmentationError) as excinfo:
            PseudoCTConverter().convert_file(str(input_path))
        assert 'c4petra.nii' in excinfo.value.context['path']


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
