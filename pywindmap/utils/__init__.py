"""Utility modules."""

from pywindmap.utils.coordinate_converter import ConverterCache, CoordinateConverter
from pywindmap.utils.verification import NearestNeighborVerifier

__all__ = [
    'ConverterCache',
    'CoordinateConverter',
    'NearestNeighborVerifier',
]
