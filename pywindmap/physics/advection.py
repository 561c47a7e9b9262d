"""Wind-state smoothing and per-tick angular advection.

A particle carries a smoothed wind (speed, direction) that relaxes toward
the nearest observation by a fixed fraction on every update call. The
carried wind is then turned into a latitude/longitude displacement for the
tick:

    deg  = speed / 111000 * elapsed_ms * multiplier
    Δlat = -cos(dir) * deg
    Δlon =  sin(dir) * deg / cos(lat)

Δlon is zero where ``cos(lat)`` falls below a floor, which keeps particles
from spinning around the poles.
"""

from __future__ import annotations

import math

from pywindmap.core.models import normalize_direction

# Approximate metres per degree of latitude
METERS_PER_DEGREE = 111_000.0


def blend_speed(carried: float, observed: float, factor: float) -> float:
    """Exponential smoothing step: ``carried += (observed - carried) * factor``."""
    return carried + (observed - carried) * factor


def shortest_angle(source: float, target: float) -> float:
    """Signed angular difference ``target - source`` wrapped into (-180, 180]."""
    diff = (target - source) % 360.0
    if diff > 180.0:
        diff -= 360.0
    return diff


def blend_direction(carried: float, observed: float, factor: float) -> float:
    """Smooth a compass direction along the shortest arc.

    Returns a value in [0, 360).
    """
    return normalize_direction(carried + shortest_angle(carried, observed) * factor)


def displacement(
    speed: float,
    direction: float,
    latitude: float,
    scaled_elapsed_ms: float,
    min_lon_scale: float = 0.01,
) -> tuple[float, float]:
    """Angular displacement (Δlat, Δlon) in degrees for one tick.

    Parameters
    ----------
    speed : float
        Carried wind speed (m/s).
    direction : float
        Carried wind direction (degrees).
    latitude : float
        Pre-displacement latitude (degrees), used for the longitude scale.
    scaled_elapsed_ms : float
        Elapsed milliseconds already multiplied by the visual speed-up.
    min_lon_scale : float
        ``cos(lat)`` floor below which Δlon is zero.

    Returns
    -------
    tuple[float, float]
        ``(dlat, dlon)`` in degrees.
    """
    deg = speed / METERS_PER_DEGREE * scaled_elapsed_ms
    dir_rad = math.radians(direction)

    dlat = deg * -math.cos(dir_rad)
    east = deg * math.sin(dir_rad)

    lon_scale = math.cos(math.radians(latitude))
    dlon = east / lon_scale if lon_scale >= min_lon_scale else 0.0
    return dlat, dlon
