"""Nearest-neighbour index over observations on the unit sphere.

A balanced k-d tree (``scipy.spatial.cKDTree`` with median splits) over
the three Cartesian axes of each observation's unit-sphere embedding.
Distances are Euclidean chords, which rank neighbours identically to
great-circle distance (see :mod:`pywindmap.core.geo`).
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Sequence

import numpy as np
from scipy.spatial import cKDTree

from pywindmap.core.geo import to_cartesian
from pywindmap.core.models import EmptyInputError, Observation

logger = logging.getLogger(__name__)

# Tolerance on |x² + y² + z² - 1| for an element to be indexed
UNIT_NORM_TOLERANCE = 1e-6


def _valid_cartesian(xyz: Any) -> bool:
    try:
        x, y, z = (float(c) for c in xyz)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
        return False
    return abs(x * x + y * y + z * z - 1.0) < UNIT_NORM_TOLERANCE


def query_coordinates(query: Any) -> tuple[float, float, float]:
    """Resolve a query point to a Cartesian triple.

    Accepts anything exposing ``cartesian`` (observations, particles), any
    object with ``latitude``/``longitude``, or a plain ``(x, y, z)``
    sequence.
    """
    cartesian = getattr(query, "cartesian", None)
    if cartesian is not None:
        x, y, z = cartesian
        return float(x), float(y), float(z)
    if hasattr(query, "latitude") and hasattr(query, "longitude"):
        return to_cartesian(query.latitude, query.longitude)
    x, y, z = query
    return float(x), float(y), float(z)


class SpatialIndex:
    """Immutable k-d tree over observation coordinates.

    Do not instantiate directly; use :meth:`build`.

    Parameters
    ----------
    observations : tuple[Observation, ...]
        Indexed observations (only those with valid coordinates).
    points : np.ndarray
        ``(N, 3)`` Cartesian coordinates aligned with *observations*.
    """

    def __init__(self, observations: tuple[Observation, ...], points: np.ndarray) -> None:
        self._observations = observations
        self._points = points
        self._tree = cKDTree(points, balanced_tree=True)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def build(cls, observations: Iterable[Observation]) -> "SpatialIndex":
        """Build a balanced index over *observations*.

        Elements without a finite unit-sphere ``cartesian`` triple are
        skipped.

        Raises
        ------
        EmptyInputError
            If the sequence is empty or no element is usable.
        """
        usable: list[Observation] = []
        skipped = 0
        for obs in observations:
            if _valid_cartesian(getattr(obs, "cartesian", None)):
                usable.append(obs)
            else:
                skipped += 1

        if skipped:
            logger.warning("Skipped %d observation(s) without valid coordinates", skipped)
        if not usable:
            raise EmptyInputError(
                "Cannot build spatial index: no observations with valid "
                "x, y, z coordinates"
            )

        points = np.array([obs.cartesian for obs in usable], dtype=np.float64)
        index = cls(tuple(usable), points)
        logger.info("Spatial index built over %d observations", len(usable))
        return index

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def nearest(self, query: Any, k: int = 1) -> list[tuple[Observation, float]]:
        """Return the *k* observations closest to *query*, nearest first.

        Parameters
        ----------
        query
            Query point (see :func:`query_coordinates`).
        k : int
            Number of neighbours. Values above ``len(self)`` return every
            observation.

        Returns
        -------
        list[tuple[Observation, float]]
            ``(observation, chord_distance)`` pairs in ascending distance.
        """
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        q = query_coordinates(query)
        if not all(math.isfinite(c) for c in q):
            return []
        n = len(self._observations)
        distances, indices = self._tree.query(q, k=min(k, n))
        return [
            (self._observations[i], float(d))
            for d, i in zip(np.atleast_1d(distances).tolist(), np.atleast_1d(indices).tolist())
        ]

    def nearest_observation(self, geo_point: Any) -> tuple[Observation, float]:
        """Single nearest observation to a geographic point (hover queries)."""
        return self.nearest(geo_point, 1)[0]

    def nearest_many(self, xyz: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Vectorised 1-nearest lookup for many Cartesian query points.

        Parameters
        ----------
        xyz : np.ndarray
            ``(N, 3)`` query coordinates.

        Returns
        -------
        tuple[np.ndarray, np.ndarray]
            ``(indices, distances)``; ``indices`` address
            :attr:`observations`, and equal ``len(self)`` for rows that
            have no neighbour (non-finite coordinates).
        """
        xyz = np.asarray(xyz, dtype=np.float64).reshape(-1, 3)
        if xyz.shape[0] == 0:
            return np.empty(0, dtype=np.intp), np.empty(0, dtype=np.float64)
        indices = np.full(xyz.shape[0], len(self._observations), dtype=np.intp)
        distances = np.full(xyz.shape[0], np.inf)
        finite = np.isfinite(xyz).all(axis=1)
        if finite.any():
            d, i = self._tree.query(xyz[finite], k=1)
            indices[finite] = i
            distances[finite] = d
        return indices, distances

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def observations(self) -> Sequence[Observation]:
        """Indexed observations, in insertion order."""
        return self._observations

    @property
    def points(self) -> np.ndarray:
        """Read-only ``(N, 3)`` view of the indexed coordinates."""
        view = self._points.view()
        view.flags.writeable = False
        return view

    def __len__(self) -> int:
        return len(self._observations)
