"""Property-based tests for sphere wraparound."""

from __future__ import annotations

from hypothesis import given, settings, strategies as st

from pywindmap.physics.boundary import wrap_position


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

any_lon = st.floats(min_value=-1000.0, max_value=1000.0,
                    allow_nan=False, allow_infinity=False)
any_lat = st.floats(min_value=-1000.0, max_value=1000.0,
                    allow_nan=False, allow_infinity=False)
valid_lat = st.floats(min_value=-90.0, max_value=90.0,
                      allow_nan=False, allow_infinity=False)
valid_lon = st.floats(min_value=-180.0, max_value=180.0,
                      allow_nan=False, allow_infinity=False)
overshoot = st.floats(min_value=1e-6, max_value=10.0,
                      allow_nan=False, allow_infinity=False)


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

@given(lat=any_lat, lon=any_lon)
@settings(max_examples=500)
def test_wrapped_position_in_range(lat, lon):
    """Any displaced position folds back into [-90, 90] x [-180, 180]."""
    new_lat, new_lon, _ = wrap_position(lat, lon)
    assert -90.0 <= new_lat <= 90.0
    assert -180.0 <= new_lon <= 180.0


@given(lat=valid_lat, lon=valid_lon)
@settings(max_examples=300)
def test_in_range_position_unchanged(lat, lon):
    """Positions already on the map are returned as-is and not flagged."""
    assert wrap_position(lat, lon) == (lat, lon, False)


@given(d=overshoot, lon=st.floats(min_value=-170.0, max_value=-10.0))
@settings(max_examples=200)
def test_north_pole_reflection(d, lon):
    """Crossing the north pole by d lands at 90 - d on the opposite meridian."""
    new_lat, new_lon, wrapped = wrap_position(90.0 + d, lon)
    assert wrapped
    assert abs(new_lat - (90.0 - d)) < 1e-9
    assert abs(new_lon - (lon + 180.0)) < 1e-9


@given(d=overshoot, lon=st.floats(min_value=10.0, max_value=170.0))
@settings(max_examples=200)
def test_south_pole_reflection(d, lon):
    """Crossing the south pole mirrors latitude and flips longitude by 180."""
    new_lat, new_lon, wrapped = wrap_position(-90.0 - d, lon)
    assert wrapped
    assert abs(new_lat - (-90.0 + d)) < 1e-9
    assert abs(new_lon - (lon - 180.0)) < 1e-9


@given(lat=valid_lat, d=overshoot)
@settings(max_examples=200)
def test_antimeridian_crossing(lat, d):
    """Crossing +180 re-enters just east of -180, latitude untouched."""
    new_lat, new_lon, wrapped = wrap_position(lat, 180.0 + d)
    assert wrapped
    assert new_lat == lat
    assert abs(new_lon - (-180.0 + d)) < 1e-9
