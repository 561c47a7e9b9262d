"""Geographic ↔ unit-sphere conversions and spherical distances.

Points are embedded on the unit sphere as

    x = cos(lat) cos(lon)
    y = cos(lat) sin(lon)
    z = sin(lat)

The Euclidean chord between two embedded points is ``2 sin(θ / 2)`` for a
central angle ``θ``, so it orders neighbours exactly like great-circle
distance while avoiding trigonometry at query time.
"""

from __future__ import annotations

import math

import numpy as np

EARTH_RADIUS = 6_371_000.0  # metres


def to_cartesian(lat: float, lon: float) -> tuple[float, float, float]:
    """Convert latitude/longitude (degrees) to a unit-sphere triple."""
    lat_rad = math.radians(lat)
    lon_rad = math.radians(lon)
    cos_lat = math.cos(lat_rad)
    return (
        cos_lat * math.cos(lon_rad),
        cos_lat * math.sin(lon_rad),
        math.sin(lat_rad),
    )


def to_geo(x: float, y: float, z: float) -> tuple[float, float]:
    """Convert a Cartesian triple back to (lat, lon) in degrees.

    The triple does not need to be normalised; it is projected radially
    onto the sphere. The origin maps to (0, 0).
    """
    r = math.sqrt(x * x + y * y + z * z)
    if r == 0.0:
        return 0.0, 0.0
    lat = math.degrees(math.asin(max(-1.0, min(1.0, z / r))))
    lon = math.degrees(math.atan2(y, x))
    return lat, lon


def to_cartesian_array(lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Vectorised :func:`to_cartesian`; returns an ``(N, 3)`` array."""
    lat_rad = np.deg2rad(np.asarray(lats, dtype=np.float64))
    lon_rad = np.deg2rad(np.asarray(lons, dtype=np.float64))
    cos_lat = np.cos(lat_rad)
    return np.column_stack((
        cos_lat * np.cos(lon_rad),
        cos_lat * np.sin(lon_rad),
        np.sin(lat_rad),
    ))


def chord_distance(
    a: tuple[float, float, float],
    b: tuple[float, float, float],
) -> float:
    """Euclidean distance between two Cartesian triples."""
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    dz = a[2] - b[2]
    return math.sqrt(dx * dx + dy * dy + dz * dz)


def chord_to_central_angle(chord: float) -> float:
    """Central angle (radians) subtended by a unit-sphere chord."""
    return 2.0 * math.asin(max(0.0, min(1.0, chord / 2.0)))


def great_circle_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    radius: float = EARTH_RADIUS,
) -> float:
    """Haversine distance between two points (degrees), in metres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return radius * 2 * math.atan2(math.sqrt(a), math.sqrt(max(0.0, 1 - a)))
