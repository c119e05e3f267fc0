"""PETRA MR to pseudo-CT conversion."""

from .config import (
    CalibrationConfig,
    ConversionConfig,
    HistogramConfig,
    MaskRefinementConfig,
    CALIBRATIONS,
    get_calibration,
    load_config
)
from .conversion import PseudoCTConverter, ConversionResult, map_to_hu

__version__ = '0.1.0'

__all__ = [
    'CalibrationConfig',
    'ConversionConfig',
    'HistogramConfig',
    'MaskRefinementConfig',
    'CALIBRATIONS',
    'get_calibration',
    'load_config',
    'PseudoCTConverter',
    'ConversionResult',
    'map_to_hu'
]
