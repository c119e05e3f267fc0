"""Configuration for PETRA to pseudo-CT conversion.

Contains the calibration revisions and the tunable parameters of the
mask refinement, histogram normalization and HU mapping stages.
"""

from dataclasses import dataclass, field, asdict, fields
from numbers import Integral, Real
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .errors import ConfigurationError


@dataclass(frozen=True)
class CalibrationConfig:
    """Linear PETRA intensity to HU calibration.

    HU = slope * normalized_intensity + intercept inside the skull. The
    constants are derived offline from a paired PETRA/CT study and must
    stay consistent with the HU-to-density table published with them.
    """
    name: str = 'petra-2024'
    slope: float = -2929.6
    intercept: float = 3274.9
    background_hu: float = -1000.0
    soft_tissue_hu: float = 42.0
    density_table: Optional[str] = None

    def validate(self) -> None:
        for key in ('slope', 'intercept', 'background_hu', 'soft_tissue_hu'):
            value = getattr(self, key)
            if not isinstance(value, Real) or isinstance(value, bool):
                raise ConfigurationError(
                    f"Calibration value '{key}' must be a number",
                    stage='calibration', context={'name': self.name, key: value}
                )


# Calibration revisions; changing a revision changes the clinical meaning
# of the output, so add a new entry instead of editing an existing one.
CALIBRATIONS: Dict[str, CalibrationConfig] = {
    'petra-2024': CalibrationConfig(
        name='petra-2024', slope=-2929.6, intercept=3274.9
    ),
    'petra-2023': CalibrationConfig(
        name='petra-2023', slope=-2928.8, intercept=3274.6
    ),
    'zte-2024': CalibrationConfig(
        name='zte-2024', slope=-2085.0, intercept=2329.0
    ),
}

DEFAULT_CALIBRATION = 'petra-2024'


def get_calibration(name: str) -> CalibrationConfig:
    """Look up a calibration revision by name."""
    try:
        return CALIBRATIONS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown calibration revision '{name}'",
            stage='calibration',
            context={'available': sorted(CALIBRATIONS)}
        ) from None


def _check_number(stage: str, key: str, value: Any, minimum: float = 0.0,
                  inclusive: bool = True) -> None:
    if not isinstance(value, Real) or isinstance(value, bool):
        raise ConfigurationError(
            f"'{key}' must be a number", stage=stage, context={key: value}
        )
    if not value >= minimum or (not inclusive and value == minimum):
        bound = '>=' if inclusive else '>'
        raise ConfigurationError(
            f"'{key}' must be {bound} {minimum}", stage=stage, context={key: value}
        )


def _check_integer(stage: str, key: str, value: Any, minimum: int) -> None:
    if not isinstance(value, Integral) or isinstance(value, bool):
        raise ConfigurationError(
            f"'{key}' must be an integer", stage=stage, context={key: value}
        )
    if value < minimum:
        raise ConfigurationError(
            f"'{key}' must be >= {minimum}", stage=stage, context={key: value}
        )


def _check_axes(stage: str, key: str, axes: Any, ndim: int = 3) -> None:
    try:
        axes = tuple(axes)
    except TypeError:
        raise ConfigurationError(
            f"'{key}' must be a sequence of axes", stage=stage, context={key: axes}
        ) from None
    valid = all(
        isinstance(a, Integral) and not isinstance(a, bool) and 1 <= a <= ndim
        for a in axes
    )
    if not axes or not valid or len(set(axes)) != len(axes):
        raise ConfigurationError(
            f"'{key}' must be a non-empty set of distinct axes in 1..{ndim}",
            stage=stage, context={key: axes}
        )


@dataclass
class MaskRefinementConfig:
    """Parameters turning tissue probabilities into head and skull masks."""
    head_threshold: float = 0.5
    skull_threshold: float = 0.5
    head_dilation_size: int = 3  # Full-hole filler safety margin (voxels)
    head_sweep_axes: Tuple[int, ...] = (1, 2, 3)
    skull_close_radius: float = 2.0  # imclose sphere radius (voxels)
    skull_max_hole_radius: float = 100.0  # Holes at least this big stay open
    component_count: int = 1
    allow_empty_masks: bool = True
    parallel: bool = False
    mask_plot: bool = False  # Probability / thresholded / filled comparison figure
    mask_plot_path: Optional[str] = None

    def validate(self) -> None:
        stage = 'mask_refinement'
        for key in ('head_threshold', 'skull_threshold'):
            _check_number(stage, key, getattr(self, key))
            if getattr(self, key) > 1:
                raise ConfigurationError(
                    f"'{key}' must be a probability in [0, 1]",
                    stage=stage, context={key: getattr(self, key)}
                )
        _check_integer(stage, 'head_dilation_size', self.head_dilation_size, 0)
        _check_axes(stage, 'head_sweep_axes', self.head_sweep_axes)
        _check_number(stage, 'skull_close_radius', self.skull_close_radius)
        _check_number(stage, 'skull_max_hole_radius', self.skull_max_hole_radius)
        _check_integer(stage, 'component_count', self.component_count, 1)


@dataclass
class HistogramConfig:
    """Parameters of the soft-tissue peak search.

    Set ``enabled`` to False for inputs that are already normalized.
    """
    enabled: bool = True
    n_peaks: int = 2
    min_peak_distance: float = 50.0  # Intensity units
    plot: bool = False
    plot_path: Optional[str] = None

    def validate(self) -> None:
        stage = 'histogram_normalization'
        _check_integer(stage, 'n_peaks', self.n_peaks, 1)
        _check_number(stage, 'min_peak_distance', self.min_peak_distance)


@dataclass
class ConversionConfig:
    """Top-level configuration of a PETRA to pseudo-CT conversion run."""
    masks: MaskRefinementConfig = field(default_factory=MaskRefinementConfig)
    histogram: HistogramConfig = field(default_factory=HistogramConfig)
    calibration: CalibrationConfig = field(
        default_factory=lambda: CALIBRATIONS[DEFAULT_CALIBRATION]
    )
    segmentation_method: str = 'spm12'
    segmentation_output_dir: Optional[str] = None  # Renamed SPM12 outputs live here
    save_masks: bool = False
    verbose: bool = False

    def validate(self) -> None:
        self.masks.validate()
        self.histogram.validate()
        self.calibration.validate()
        if self.segmentation_method not in ('external', 'spm12'):
            raise ConfigurationError(
                "Unknown segmentation method",
                stage='config', context={'segmentation_method': self.segmentation_method}
            )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['masks']['head_sweep_axes'] = list(self.masks.head_sweep_axes)
        return data


def _build(cls, data: Optional[Dict[str, Any]], section: str):
    data = dict(data or {})
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in '{section}' section",
            stage='config', context={'keys': unknown}
        )
    return cls(**data)


def config_from_dict(data: Dict[str, Any]) -> ConversionConfig:
    """Build and validate a ConversionConfig from nested dictionaries.

    ``calibration`` may be a revision name or a mapping of constants; a
    mapping that carries a ``base`` key starts from that revision.
    """
    data = dict(data or {})
    masks = _build(MaskRefinementConfig, data.pop('masks', None), 'masks')
    if isinstance(masks.head_sweep_axes, list):
        masks.head_sweep_axes = tuple(masks.head_sweep_axes)
    histogram = _build(HistogramConfig, data.pop('histogram', None), 'histogram')

    calibration_data = data.pop('calibration', DEFAULT_CALIBRATION)
    if isinstance(calibration_data, str):
        calibration = get_calibration(calibration_data)
    else:
        calibration_data = dict(calibration_data)
        base = get_calibration(calibration_data.pop('base', DEFAULT_CALIBRATION))
        merged = {**asdict(base), **calibration_data}
        calibration = _build(CalibrationConfig, merged, 'calibration')

    config = _build(ConversionConfig, data, 'conversion')
    config.masks = masks
    config.histogram = histogram
    config.calibration = calibration
    config.validate()
    return config


def load_config(path: Union[str, Path]) -> ConversionConfig:
    """Load a conversion configuration from a YAML file."""
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration file must contain a mapping",
            stage='config', context={'path': str(path)}
        )
    return config_from_dict(data)


def save_config(config: ConversionConfig, path: Union[str, Path]) -> None:
    """Write a conversion configuration to a YAML file."""
    with open(path, 'w') as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
