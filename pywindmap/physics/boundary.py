"""Sphere wraparound for particle positions.

Implements pole traversal and date-line crossing. Particles are never
removed for leaving the map; they are folded back onto the sphere and the
caller is told that a wrap happened so it can reset the trail.
"""

from __future__ import annotations


def wrap_position(lat: float, lon: float) -> tuple[float, float, bool]:
    """Fold a displaced position back into [-90, 90] × [-180, 180].

    Processing order:
    1. Pole traversal: ``lat' = ±180 - lat`` with a 180° longitude flip
    2. Date-line wrapping: longitude shifted by ±360°

    Parameters
    ----------
    lat, lon : float
        Position after displacement (degrees).

    Returns
    -------
    tuple[float, float, bool]
        Corrected (lat, lon, wrapped).
    """
    wrapped = False

    # --- 1. Pole traversal ---
    if lat > 90.0 or lat < -90.0:
        lat, lon = _normalize_lat(lat, lon)
        wrapped = True

    # --- 2. Date-line wrapping ---
    if lon > 180.0 or lon < -180.0:
        lon = _normalize_lon(lon)
        wrapped = True

    return lat, lon, wrapped


# -----------------------------------------------------------------------
# Pure helper functions
# -----------------------------------------------------------------------

def _normalize_lon(lon: float) -> float:
    """Wrap longitude into [-180, 180]."""
    lon = ((lon + 180.0) % 360.0) - 180.0
    # Python's % can return -180 for exactly 180; fix that edge.
    if lon == -180.0:
        lon = 180.0
    return lon


def _normalize_lat(lat: float, lon: float) -> tuple[float, float]:
    """Reflect latitude across the pole it crossed and flip longitude.

    Longitude is returned un-normalised; the date-line step handles it.
    """
    # Reduce multi-lap overshoots into [-180, 180) first.
    if lat >= 180.0 or lat < -180.0:
        lat = ((lat + 180.0) % 360.0) - 180.0

    if lat > 90.0:
        lat = 180.0 - lat
        lon += 180.0
    elif lat < -90.0:
        lat = -180.0 - lat
        lon += 180.0
    return lat, lon
