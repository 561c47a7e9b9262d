"""Observation batch I/O and global sample-point generation.

Observation batches are stored as the JSON cache written by the weather
fetcher::

    {"timestamp": <ms since epoch>,
     "data": [{"current": {...}, "location": {...}}, ...]}

Individual malformed records are skipped; a malformed file is an error.
"""

from __future__ import annotations

import json
import logging
import math
import time
from pathlib import Path
from typing import Any, Iterable, Optional

import numpy as np

from pywindmap.core.models import (
    InvalidCoordinateError,
    Observation,
    ObservationFormatError,
)

logger = logging.getLogger(__name__)

# Cached batches older than this are refetched
CACHE_EXPIRY_MS = 24 * 60 * 60 * 1000


def parse_observations(payload: Any) -> list[Observation]:
    """Build observations from a decoded cache object.

    Raises
    ------
    ObservationFormatError
        If *payload* is not ``{"data": [...]}``.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise ObservationFormatError(
            "Invalid data structure. Expected { timestamp: number, data: WeatherData[] }"
        )

    observations: list[Observation] = []
    skipped = 0
    for i, record in enumerate(payload["data"]):
        try:
            observations.append(Observation.from_record(record))
        except (KeyError, TypeError, ValueError, InvalidCoordinateError) as e:
            skipped += 1
            logger.debug("Skipping record %d: %s", i, e)

    if skipped:
        logger.warning("Skipped %d malformed observation record(s)", skipped)
    return observations


def read_observations(path: str | Path) -> list[Observation]:
    """Load an observation batch from a JSON cache file.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ObservationFormatError
        If the file is not valid JSON or has the wrong structure.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise ObservationFormatError(f"Error parsing weather data file {path}: {e}") from e

    observations = parse_observations(payload)
    logger.info("Loaded %d weather data points from %s", len(observations), path)
    return observations


def write_observations(
    path: str | Path,
    observations: Iterable[Observation],
    timestamp: Optional[int] = None,
) -> None:
    """Write observations in the JSON cache layout."""
    if timestamp is None:
        timestamp = int(time.time() * 1000)
    payload = {
        "timestamp": timestamp,
        "data": [obs.to_record() for obs in observations],
    }
    path = Path(path)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f)


def read_timestamp(path: str | Path) -> Optional[int]:
    """Return the cache timestamp (ms) of a batch file, or None if absent."""
    with Path(path).open("r", encoding="utf-8") as f:
        payload = json.load(f)
    ts = payload.get("timestamp") if isinstance(payload, dict) else None
    return int(ts) if isinstance(ts, (int, float)) else None


def is_cache_fresh(
    timestamp_ms: Optional[float],
    now_ms: Optional[float] = None,
    max_age_ms: float = CACHE_EXPIRY_MS,
) -> bool:
    """True if a cache written at *timestamp_ms* has not yet expired."""
    if timestamp_ms is None:
        return False
    if now_ms is None:
        now_ms = time.time() * 1000.0
    return now_ms - timestamp_ms <= max_age_ms


def generate_global_grid(num_points: int) -> tuple[np.ndarray, np.ndarray]:
    """Near-uniform sample locations on the sphere (golden-angle spiral).

    Point ``i`` sits at height ``y = 1 - 2i / (n - 1)`` with azimuth
    advancing by the golden angle ``π (3 - √5)``.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        ``(latitudes, longitudes)`` in degrees; longitudes in [-180, 180).
    """
    if num_points < 1:
        raise ValueError(f"num_points must be >= 1, got {num_points}")
    if num_points == 1:
        return np.zeros(1), np.full(1, -180.0)

    i = np.arange(num_points, dtype=np.float64)
    y = 1.0 - (i / (num_points - 1)) * 2.0
    latitudes = np.rad2deg(np.arcsin(np.clip(y, -1.0, 1.0)))

    golden_angle = math.pi * (3.0 - math.sqrt(5.0))
    theta = golden_angle * i
    longitudes = np.rad2deg(np.mod(theta, 2.0 * math.pi)) - 180.0

    logger.debug("Generated %d points around the globe", num_points)
    return latitudes, longitudes
