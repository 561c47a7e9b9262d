"""Property-based tests for the unit-sphere projector."""

from __future__ import annotations

import math

import numpy as np
from hypothesis import given, settings, strategies as st

from pywindmap.core.geo import (
    chord_distance,
    chord_to_central_angle,
    great_circle_distance,
    to_cartesian,
    to_cartesian_array,
    to_geo,
)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

any_lat = st.floats(min_value=-90.0, max_value=90.0,
                    allow_nan=False, allow_infinity=False)
any_lon = st.floats(min_value=-180.0, max_value=180.0,
                    allow_nan=False, allow_infinity=False)
# Longitude is undefined at the poles, so keep round trips away from them
inner_lat = st.floats(min_value=-89.9, max_value=89.9,
                      allow_nan=False, allow_infinity=False)
inner_lon = st.floats(min_value=-179.9, max_value=179.9,
                      allow_nan=False, allow_infinity=False)


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

@given(lat=any_lat, lon=any_lon)
@settings(max_examples=300)
def test_cartesian_is_unit_length(lat, lon):
    """Every embedded point lies on the unit sphere."""
    x, y, z = to_cartesian(lat, lon)
    assert abs(x * x + y * y + z * z - 1.0) < 1e-12


@given(lat=inner_lat, lon=inner_lon)
@settings(max_examples=300)
def test_geo_round_trip(lat, lon):
    """to_geo inverts to_cartesian away from the poles."""
    lat2, lon2 = to_geo(*to_cartesian(lat, lon))
    assert abs(lat2 - lat) < 1e-9
    assert abs(lon2 - lon) < 1e-9


@given(
    lats=st.lists(any_lat, min_size=1, max_size=20),
    lons=st.lists(any_lon, min_size=1, max_size=20),
)
@settings(max_examples=100)
def test_array_form_matches_scalar(lats, lons):
    """The vectorised projector agrees with the scalar one row by row."""
    n = min(len(lats), len(lons))
    xyz = to_cartesian_array(np.array(lats[:n]), np.array(lons[:n]))
    assert xyz.shape == (n, 3)
    for row, lat, lon in zip(xyz, lats[:n], lons[:n]):
        assert np.allclose(row, to_cartesian(lat, lon), atol=1e-12)


@given(lat1=any_lat, lon1=any_lon, lat2=any_lat, lon2=any_lon)
@settings(max_examples=300)
def test_chord_matches_central_angle(lat1, lon1, lat2, lon2):
    """The chord subtends the haversine central angle on the unit sphere."""
    chord = chord_distance(to_cartesian(lat1, lon1), to_cartesian(lat2, lon2))
    angle = great_circle_distance(lat1, lon1, lat2, lon2, radius=1.0)
    assert math.isclose(chord_to_central_angle(chord), angle, abs_tol=1e-6)
