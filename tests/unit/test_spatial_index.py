"""Unit tests for the k-d tree SpatialIndex."""

from dataclasses import replace

import numpy as np
import pytest
from scipy.spatial.distance import cdist

from pywindmap.core.geo import chord_distance, to_cartesian
from pywindmap.core.models import EmptyInputError, GeoCoordinate, Observation
from pywindmap.core.spatial_index import SpatialIndex, query_coordinates


def _obs(lat, lon, speed=5.0, direction=0.0, temp=10.0):
    return Observation.create(lat, lon, temp, speed, direction)


@pytest.fixture
def three_observations():
    return [
        _obs(0.0, 0.0, speed=10.0, direction=90.0, temp=20.0),
        _obs(0.0, 90.0, speed=5.0, direction=180.0, temp=0.0),
        _obs(45.0, -120.0, speed=8.0, direction=270.0, temp=-5.0),
    ]


@pytest.fixture
def random_observations():
    rng = np.random.default_rng(42)
    lats = rng.uniform(-90.0, 90.0, 500)
    lons = rng.uniform(-180.0, 180.0, 500)
    return [_obs(float(a), float(o)) for a, o in zip(lats, lons)]


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def test_build_empty_raises():
    with pytest.raises(EmptyInputError):
        SpatialIndex.build([])


def test_build_skips_invalid_coordinates(three_observations):
    bad = replace(three_observations[0], cartesian=(2.0, 0.0, 0.0))
    nan = replace(three_observations[1], cartesian=(float("nan"), 0.0, 0.0))
    index = SpatialIndex.build([bad, nan, three_observations[2]])

    assert len(index) == 1
    assert index.observations[0] is three_observations[2]


def test_build_all_invalid_raises(three_observations):
    bad = [replace(o, cartesian=(0.0, 0.0, 0.0)) for o in three_observations]
    with pytest.raises(EmptyInputError):
        SpatialIndex.build(bad)


def test_points_view_is_read_only(three_observations):
    index = SpatialIndex.build(three_observations)
    with pytest.raises(ValueError):
        index.points[0, 0] = 5.0


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def test_nearest_matches_expected_observation(three_observations):
    index = SpatialIndex.build(three_observations)
    (obs, dist), = index.nearest(GeoCoordinate(1.0, 1.0), 1)

    assert obs is three_observations[0]
    assert dist == pytest.approx(chord_distance(to_cartesian(1.0, 1.0), obs.cartesian))


def test_nearest_single_point_always_returned():
    only = _obs(-30.0, 150.0)
    index = SpatialIndex.build([only])
    for query in [GeoCoordinate(89.0, -179.0), GeoCoordinate(-30.0, 150.0), (0.0, 0.0, 1.0)]:
        result = index.nearest(query, 1)
        assert result[0][0] is only


def test_nearest_exact_hit_has_zero_distance(three_observations):
    index = SpatialIndex.build(three_observations)
    (obs, dist), = index.nearest(three_observations[1], 1)
    assert obs is three_observations[1]
    assert dist == pytest.approx(0.0, abs=1e-12)


def test_nearest_k_larger_than_size_returns_all_sorted(three_observations):
    index = SpatialIndex.build(three_observations)
    result = index.nearest(GeoCoordinate(10.0, 10.0), 10)

    assert len(result) == 3
    distances = [d for _, d in result]
    assert distances == sorted(distances)
    assert {id(o) for o, _ in result} == {id(o) for o in three_observations}


def test_nearest_rejects_non_positive_k(three_observations):
    index = SpatialIndex.build(three_observations)
    with pytest.raises(ValueError):
        index.nearest(GeoCoordinate(0.0, 0.0), 0)


def test_nearest_agrees_with_brute_force(random_observations):
    index = SpatialIndex.build(random_observations)
    rng = np.random.default_rng(7)

    for _ in range(200):
        q = to_cartesian(float(rng.uniform(-90, 90)), float(rng.uniform(-180, 180)))
        expected = sorted(chord_distance(q, o.cartesian) for o in random_observations)[:5]
        got = [d for _, d in index.nearest(q, 5)]
        assert got == pytest.approx(expected, abs=1e-12)


def test_nearest_large_index_with_polar_clusters():
    rng = np.random.default_rng(2024)
    lats = np.concatenate([
        rng.uniform(-90.0, 90.0, 9000),
        rng.uniform(89.5, 90.0, 500),
        rng.uniform(-90.0, -89.5, 500),
    ])
    lons = rng.uniform(-180.0, 180.0, lats.size)
    observations = [_obs(float(a), float(o)) for a, o in zip(lats, lons)]
    index = SpatialIndex.build(observations)
    assert len(index) == 10_000

    q_lats = np.concatenate([
        rng.uniform(-90.0, 90.0, 200),
        rng.uniform(89.0, 90.0, 50),
        rng.uniform(-90.0, -89.0, 50),
    ])
    q_lons = rng.uniform(-180.0, 180.0, q_lats.size)
    queries = np.array([to_cartesian(float(a), float(o)) for a, o in zip(q_lats, q_lons)])
    expected = cdist(queries, index.points).min(axis=1)

    for row, q in enumerate(queries):
        (obs, dist), = index.nearest(tuple(q), 1)
        assert dist == pytest.approx(expected[row], abs=1e-12)
        assert chord_distance(tuple(q), obs.cartesian) == pytest.approx(dist, abs=1e-12)

    _, bulk = index.nearest_many(queries)
    np.testing.assert_allclose(bulk, expected, atol=1e-12)


def test_nearest_many_flags_non_finite_rows(three_observations):
    index = SpatialIndex.build(three_observations)
    xyz = np.array([to_cartesian(1.0, 1.0), (np.nan, 0.0, 0.0)])

    indices, distances = index.nearest_many(xyz)

    assert index.observations[int(indices[0])] is three_observations[0]
    assert indices[1] == len(index)
    assert np.isinf(distances[1])
    assert index.nearest((np.nan, 0.0, 0.0), 1) == []


def test_nearest_many_agrees_with_nearest(random_observations):
    index = SpatialIndex.build(random_observations)
    rng = np.random.default_rng(9)
    lats = rng.uniform(-90, 90, 100)
    lons = rng.uniform(-180, 180, 100)
    xyz = np.array([to_cartesian(a, o) for a, o in zip(lats, lons)])

    indices, distances = index.nearest_many(xyz)

    assert indices.shape == (100,)
    for row, (j, d) in enumerate(zip(indices, distances)):
        (obs, dist), = index.nearest(tuple(xyz[row]), 1)
        assert dist == pytest.approx(d, abs=1e-12)
        assert index.observations[int(j)] is obs


def test_nearest_many_empty_query(three_observations):
    index = SpatialIndex.build(three_observations)
    indices, distances = index.nearest_many(np.empty((0, 3)))
    assert indices.size == 0
    assert distances.size == 0


def test_nearest_observation_for_hover(three_observations):
    index = SpatialIndex.build(three_observations)
    obs, _ = index.nearest_observation(GeoCoordinate(44.0, -119.0))
    assert obs is three_observations[2]


# ---------------------------------------------------------------------------
# Query point resolution
# ---------------------------------------------------------------------------

def test_query_coordinates_prefers_cartesian():
    obs = _obs(10.0, 20.0)
    assert query_coordinates(obs) == obs.cartesian


def test_query_coordinates_from_lat_lon():
    assert query_coordinates(GeoCoordinate(0.0, 90.0)) == pytest.approx((0.0, 1.0, 0.0), abs=1e-12)


def test_query_coordinates_from_tuple():
    assert query_coordinates((0.0, 0.0, 1.0)) == (0.0, 0.0, 1.0)
