"""Tests for conversion configuration and calibration revisions."""

import tempfile
from pathlib import Path

import pytest

from pseudoct.config import (
    CALIBRATIONS,
    ConversionConfig,
    HistogramConfig,
    MaskRefinementConfig,
    config_from_dict,
    get_calibration,
    load_config,
    save_config,
)
from pseudoct.errors import ConfigurationError


def test_defaults():
    """Test default parameters."""
    config = ConversionConfig()
    config.validate()

    assert config.calibration.name == 'petra-2024'
    assert config.calibration.slope == -2929.6
    assert config.calibration.intercept == 3274.9
    assert config.calibration.background_hu == -1000
    assert config.calibration.soft_tissue_hu == 42
    assert config.masks.head_sweep_axes == (1, 2, 3)
    assert config.masks.skull_close_radius == 2.0
    assert config.masks.skull_max_hole_radius == 100.0
    assert config.masks.mask_plot is False
    assert config.segmentation_output_dir is None
    assert config.histogram.n_peaks == 2


def test_calibration_revisions():
    """Test each revision is retrievable by name."""
    for name, calibration in CALIBRATIONS.items():
        assert get_calibration(name) is calibration
    assert get_calibration('petra-2023').slope == -2928.8

    with pytest.raises(ConfigurationError) as excinfo:
        get_calibration('petra-1999')
    assert 'petra-2024' in excinfo.value.context['available']


def test_invalid_mask_parameters():
    """Test invalid mask refinement parameters are rejected."""
    bad = [
        {'head_threshold': 1.5},
        {'skull_threshold': -0.1},
        {'head_dilation_size': -1},
        {'head_dilation_size': 2.5},
        {'head_sweep_axes': ()},
        {'head_sweep_axes': (1, 4)},
        {'skull_max_hole_radius': -2},
        {'component_count': 0},
    ]
    for kwargs in bad:
        with pytest.raises(ConfigurationError):
            MaskRefinementConfig(**kwargs).validate()


def test_invalid_histogram_parameters():
    """Test invalid peak search parameters are rejected."""
    with pytest.raises(ConfigurationError):
        HistogramConfig(n_peaks=0).validate()
    with pytest.raises(ConfigurationError):
        HistogramConfig(min_peak_distance=-5).validate()


def test_nan_parameters_rejected():
    """Test NaN thresholds, radii and peak distances fail validation."""
    nan = float('nan')
    for kwargs in ({'head_threshold': nan}, {'skull_threshold': nan},
                   {'skull_close_radius': nan}, {'skull_max_hole_radius': nan}):
        with pytest.raises(ConfigurationError):
            MaskRefinementConfig(**kwargs).validate()
    with pytest.raises(ConfigurationError):
        HistogramConfig(min_peak_distance=nan).validate()


def test_config_from_dict():
    """Test nested dictionaries and calibration overrides."""
    config = config_from_dict({
        'masks': {'head_sweep_axes': [3], 'skull_max_hole_radius': 4},
        'histogram': {'n_peaks': 3},
        'calibration': {'base': 'petra-2023', 'soft_tissue_hu': 40},
        'save_masks': True,
    })

    assert config.masks.head_sweep_axes == (3,)
    assert config.masks.skull_max_hole_radius == 4
    assert config.histogram.n_peaks == 3
    assert config.calibration.slope == -2928.8
    assert config.calibration.soft_tissue_hu == 40
    assert config.save_masks


def test_calibration_by_name():
    """Test a calibration can be selected by revision name."""
    config = config_from_dict({'calibration': 'zte-2024'})
    assert config.calibration is CALIBRATIONS['zte-2024']


def test_unknown_keys_rejected():
    """Test typos in configuration keys are reported."""
    with pytest.raises(ConfigurationError) as excinfo:
        config_from_dict({'masks': {'head_treshold': 0.4}})
    assert excinfo.value.context['keys'] == ['head_treshold']

    with pytest.raises(ConfigurationError):
        config_from_dict({'segmentation_method': 'freesurfer'})


def test_yaml_round_trip():
    """Test a saved configuration loads back unchanged."""
    config = config_from_dict({'masks': {'parallel': True}, 'calibration': 'petra-2023'})

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / 'config.yaml'
        save_config(config, path)
        loaded = load_config(path)

    assert loaded.to_dict() == config.to_dict()
    assert loaded.masks.head_sweep_axes == (1, 2, 3)


def test_yaml_must_be_mapping():
    """Test a non-mapping YAML document is rejected."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / 'config.yaml'
        path.write_text('- just\n- a list\n')
        with pytest.raises(ConfigurationError):
            load_config(path)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
