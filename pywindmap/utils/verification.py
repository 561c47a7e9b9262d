"""Verification of chord-metric nearest-neighbour selection.

The spatial index ranks neighbours by straight-line chord length through
the unit sphere. This module checks those answers against brute-force
scans, both in the chord metric and in great-circle distance, and
summarises how much extra great-circle distance any disagreement costs.
"""

from __future__ import annotations

from typing import Any, Iterable

import numpy as np
from scipy.spatial.distance import cdist

from pywindmap.core.geo import EARTH_RADIUS, to_cartesian_array
from pywindmap.core.spatial_index import SpatialIndex


def great_circle_matrix(
    lats_a: np.ndarray, lons_a: np.ndarray,
    lats_b: np.ndarray, lons_b: np.ndarray,
) -> np.ndarray:
    """Pairwise haversine distances (m), shape ``(len(a), len(b))``."""
    phi1 = np.deg2rad(np.asarray(lats_a, dtype=np.float64))[:, None]
    phi2 = np.deg2rad(np.asarray(lats_b, dtype=np.float64))[None, :]
    dphi = phi2 - phi1
    dlam = np.deg2rad(np.asarray(lons_b, dtype=np.float64))[None, :] - \
        np.deg2rad(np.asarray(lons_a, dtype=np.float64))[:, None]
    a = np.sin(dphi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlam / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


class NearestNeighborVerifier:
    """Compare index answers with brute-force nearest neighbours.

    Typical workflow::

        v = NearestNeighborVerifier(index)
        report = v.compare(lats, lons)
        print(v.summary_stats())
    """

    def __init__(self, index: SpatialIndex) -> None:
        self.index = index
        self.extra_distances: list[float] = []
        obs = index.observations
        self._lats = np.array([o.latitude for o in obs], dtype=np.float64)
        self._lons = np.array([o.longitude for o in obs], dtype=np.float64)

    def compare(
        self,
        lats: Iterable[float],
        lons: Iterable[float],
        tie_tolerance: float = 1e-9,
    ) -> dict[str, Any]:
        """Check the index's 1-nearest answer for each query point.

        Parameters
        ----------
        lats, lons : iterable of float
            Query positions (degrees).
        tie_tolerance : float
            Answers whose distance is within this of the brute-force
            minimum count as agreeing (equidistant neighbours).

        Returns
        -------
        dict
            ``"n_points"``, ``"chord_mismatches"`` (index vs brute-force
            chord), ``"great_circle_mismatches"`` (index vs brute-force
            great-circle) and ``"extra_distances"`` (m of great-circle
            distance lost per query, 0 when agreeing).
        """
        q_lats = np.asarray(list(lats), dtype=np.float64)
        q_lons = np.asarray(list(lons), dtype=np.float64)
        xyz = to_cartesian_array(q_lats, q_lons)

        chord = cdist(xyz, self.index.points)
        gc = great_circle_matrix(q_lats, q_lons, self._lats, self._lons)

        observations = self.index.observations
        position = {id(o): i for i, o in enumerate(observations)}

        chord_mismatches = 0
        gc_mismatches = 0
        extra: list[float] = []
        for row, point in enumerate(xyz):
            (obs, dist), = self.index.nearest(tuple(point), 1)
            j = position[id(obs)]

            if dist - chord[row].min() > tie_tolerance:
                chord_mismatches += 1

            gc_best = float(gc[row].min())
            gc_extra = float(gc[row, j]) - gc_best
            if gc_extra > tie_tolerance * EARTH_RADIUS:
                gc_mismatches += 1
            extra.append(max(0.0, gc_extra))

        self.extra_distances.extend(extra)
        return {
            "n_points": int(len(xyz)),
            "chord_mismatches": chord_mismatches,
            "great_circle_mismatches": gc_mismatches,
            "extra_distances": extra,
        }

    def summary_stats(self) -> dict[str, float]:
        """Return mean, max, and RMSE of accumulated extra distances (m)."""
        if not self.extra_distances:
            return {"mean": 0.0, "max": 0.0, "rmse": 0.0}
        arr = np.asarray(self.extra_distances, dtype=np.float64)
        return {
            "mean": float(np.mean(arr)),
            "max": float(np.max(arr)),
            "rmse": float(np.sqrt(np.mean(arr ** 2))),
        }
