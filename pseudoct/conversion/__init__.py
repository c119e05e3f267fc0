"""Pseudo-CT generation from normalized PETRA intensity and tissue masks."""

from .hu_mapping import map_to_hu, map_to_hu_with_calibration
from .converter import PseudoCTConverter, ConversionResult

__all__ = [
    'map_to_hu',
    'map_to_hu_with_calibration',
    'PseudoCTConverter',
    'ConversionResult'
]
