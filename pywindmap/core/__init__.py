"""Core particle engine, spatial index and models."""

from pywindmap.core.engine import ParticleField
from pywindmap.core.models import (
    EmptyInputError,
    FieldConfig,
    GeoCoordinate,
    Observation,
    Particle,
    PyWindmapError,
)
from pywindmap.core.scheduler import FrameScheduler
from pywindmap.core.spatial_index import SpatialIndex

__all__ = [
    # Engine
    'ParticleField',
    'FrameScheduler',
    # Index
    'SpatialIndex',
    # Models
    'FieldConfig',
    'GeoCoordinate',
    'Observation',
    'Particle',
    # Exceptions
    'EmptyInputError',
    'PyWindmapError',
]
