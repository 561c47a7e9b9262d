"""pywindmap - live global wind particle field on a 2-D map.

Sparse weather observations drive tens of thousands of particles that are
advected frame by frame along the nearest observed wind, projected to
screen pixels and drawn with fading trails.

Package Structure:
    core/       - Data models, spatial index, particle field engine, scheduler
    physics/    - Wind blending, advection and sphere wraparound
    data/       - Namelist configuration and observation batch I/O
    utils/      - Map projection, scale bar, nearest-neighbour verification
    io/         - Drawing collaborators (command recorder, matplotlib)
"""

__version__ = "0.1.0"

# Core
from pywindmap.core.engine import ParticleField
from pywindmap.core.geo import EARTH_RADIUS, to_cartesian, to_geo
from pywindmap.core.models import (
    ConfigParseError,
    DrawLine,
    DrawSquare,
    EmptyInputError,
    FieldConfig,
    GeoCoordinate,
    GeoPoint,
    InvalidCoordinateError,
    MissingIndexWarning,
    Observation,
    ObservationFormatError,
    OffMapWarning,
    Particle,
    PyWindmapError,
    PyWindmapWarning,
    Renderer,
    ResizeRaceWarning,
)
from pywindmap.core.scheduler import Debouncer, FrameScheduler
from pywindmap.core.spatial_index import SpatialIndex

# Data I/O
from pywindmap.data.config_parser import load_config, parse_config, write_config
from pywindmap.data.observation_reader import (
    generate_global_grid,
    read_observations,
    write_observations,
)

# Physics
from pywindmap.physics.boundary import wrap_position

# Utils
from pywindmap.utils.coordinate_converter import (
    CoordinateConverter,
    make_converter,
    real_world_span_meters,
)
from pywindmap.utils.verification import NearestNeighborVerifier

# IO
from pywindmap.io.command_recorder import CommandRecorder

__all__ = [
    # Core - Engine
    'ParticleField',
    'FrameScheduler',
    'Debouncer',
    'SpatialIndex',
    # Core - Geo
    'EARTH_RADIUS',
    'to_cartesian',
    'to_geo',
    # Core - Models
    'DrawLine',
    'DrawSquare',
    'FieldConfig',
    'GeoCoordinate',
    'GeoPoint',
    'Observation',
    'Particle',
    'Renderer',
    # Core - Exceptions
    'ConfigParseError',
    'EmptyInputError',
    'InvalidCoordinateError',
    'ObservationFormatError',
    'PyWindmapError',
    # Core - Warnings
    'MissingIndexWarning',
    'OffMapWarning',
    'PyWindmapWarning',
    'ResizeRaceWarning',
    # Data I/O
    'generate_global_grid',
    'load_config',
    'parse_config',
    'read_observations',
    'write_config',
    'write_observations',
    # Physics
    'wrap_position',
    # Utils
    'CoordinateConverter',
    'NearestNeighborVerifier',
    'make_converter',
    'real_world_span_meters',
    # IO
    'CommandRecorder',
]
