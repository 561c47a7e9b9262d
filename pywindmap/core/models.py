"""Core data models, exceptions and warnings for pywindmap.

Defines the observation and particle records that flow through the
simulation, the field configuration dataclass, the draw commands handed to
rendering collaborators, and every custom exception/warning type used
throughout the package.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

import numpy as np

from pywindmap.core.geo import to_cartesian

Color = tuple[int, int, int]
Pixel = tuple[float, float]

WHITE: Color = (255, 255, 255)

# Wind speed (m/s) mapped to full opacity
OPACITY_FULL_SPEED = 15.0


# ---------------------------------------------------------------------------
# Custom Exceptions
# ---------------------------------------------------------------------------

class PyWindmapError(Exception):
    """Base exception for all pywindmap errors."""


class EmptyInputError(PyWindmapError):
    """Raised when a spatial index is built from no usable points."""


class ConfigParseError(PyWindmapError):
    """Raised when a WINDMAP namelist file has format errors.

    Attributes:
        line_number: The line number where the error was detected.
        expected: Description of the expected format.
    """

    def __init__(self, message: str, line_number: int | None = None,
                 expected: str | None = None):
        self.line_number = line_number
        self.expected = expected
        parts = [message]
        if line_number is not None:
            parts.append(f"line {line_number}")
        if expected is not None:
            parts.append(f"expected: {expected}")
        super().__init__(" | ".join(parts))


class ObservationFormatError(PyWindmapError):
    """Raised when an observation batch file has an unsupported structure."""


class InvalidCoordinateError(PyWindmapError):
    """Raised when coordinate values are out of valid range."""


# ---------------------------------------------------------------------------
# Recoverable conditions (never raised from the frame loop)
# ---------------------------------------------------------------------------

class PyWindmapWarning(UserWarning):
    """Base warning for recoverable pywindmap conditions."""


class MissingIndexWarning(PyWindmapWarning):
    """A nearest-neighbour query was attempted before any index was built."""


class OffMapWarning(PyWindmapWarning):
    """A pixel-to-geo inversion fell outside the mapped domain."""


class ResizeRaceWarning(PyWindmapWarning):
    """A draw was attempted against stale cached viewport dimensions."""


# ---------------------------------------------------------------------------
# Query-point capability
# ---------------------------------------------------------------------------

@runtime_checkable
class GeoPoint(Protocol):
    """Anything with a geographic position can be used as a query point."""

    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


@dataclass(frozen=True)
class GeoCoordinate:
    """A bare geographic coordinate (degrees)."""
    latitude: float
    longitude: float


# ---------------------------------------------------------------------------
# Observation
# ---------------------------------------------------------------------------

def normalize_direction(direction: float) -> float:
    """Wrap a compass direction into [0, 360)."""
    direction = direction % 360.0
    # -1e-17 % 360 rounds to 360.0
    if direction >= 360.0:
        direction = 0.0
    return direction


def _js_round(value: float) -> int:
    return int(math.floor(value + 0.5))


def temperature_color(temperature: float) -> Color:
    """Map a 2 m temperature (°C) onto the blue → white → red ramp.

    The temperature is capped to [-15, 30]. 15 °C is white; colder values
    fade toward pure blue at -15 °C and warmer values toward pure red at
    30 °C.
    """
    t = max(-15.0, min(30.0, temperature))
    if t >= 15.0:
        scaler = (t - 15.0) / 15.0
        gb = _js_round(255 * (1.0 - scaler))
        return (255, gb, gb)
    scaler = (t + 15.0) / 30.0
    rg = _js_round(255 * scaler)
    return (rg, rg, 255)


def speed_opacity(wind_speed: float) -> float:
    """Opacity proportional to wind speed, saturating at 15 m/s."""
    return max(0.0, min(1.0, wind_speed / OPACITY_FULL_SPEED))


@dataclass(frozen=True)
class Location:
    """Where an observation was taken."""
    latitude: float                         # degrees, [-90, 90]
    longitude: float                        # degrees, [-180, 180]
    timezone_label: Optional[str] = None


@dataclass(frozen=True)
class Measurement:
    """Surface weather measurement at a location."""
    temperature: float       # °C at 2 m
    wind_speed: float        # m/s at 10 m, >= 0
    wind_direction: float    # degrees at 10 m, [0, 360), meteorological


@dataclass(frozen=True)
class Observation:
    """An immutable weather sample with eagerly derived display fields.

    Build instances with :meth:`create` or :meth:`from_record`; both
    validate ranges and compute ``opacity``, ``color`` and the unit-sphere
    ``cartesian`` triple so that a spatial index can be built directly over
    a collection of observations.
    """
    location: Location
    measurement: Measurement
    opacity: float
    color: Color
    cartesian: tuple[float, float, float]

    @classmethod
    def create(
        cls,
        latitude: float,
        longitude: float,
        temperature: float,
        wind_speed: float,
        wind_direction: float,
        timezone_label: Optional[str] = None,
    ) -> "Observation":
        """Validate raw values and build an observation.

        Raises
        ------
        InvalidCoordinateError
            If latitude/longitude are outside [-90, 90] / [-180, 180] or a
            measurement is not finite or the wind speed is negative.
        """
        latitude = float(latitude)
        longitude = float(longitude)
        if not (-90.0 <= latitude <= 90.0) or not (-180.0 <= longitude <= 180.0):
            raise InvalidCoordinateError(
                f"Observation at ({latitude}, {longitude}) is outside "
                f"[-90, 90] x [-180, 180]"
            )
        values = (float(temperature), float(wind_speed), float(wind_direction))
        if not all(math.isfinite(v) for v in values):
            raise InvalidCoordinateError(
                f"Observation at ({latitude}, {longitude}) has non-finite "
                f"measurement {values}"
            )
        temperature, wind_speed, wind_direction = values
        if wind_speed < 0.0:
            raise InvalidCoordinateError(
                f"Negative wind speed {wind_speed} at ({latitude}, {longitude})"
            )

        return cls(
            location=Location(latitude, longitude, timezone_label),
            measurement=Measurement(
                temperature=temperature,
                wind_speed=wind_speed,
                wind_direction=normalize_direction(wind_direction),
            ),
            opacity=speed_opacity(wind_speed),
            color=temperature_color(temperature),
            cartesian=to_cartesian(latitude, longitude),
        )

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Observation":
        """Build an observation from a cached weather-API record.

        The record layout is::

            {"current": {"temperature2m", "windSpeed10m", "windDirection10m"},
             "location": {"latitude", "longitude", "timezoneAbbreviation"}}

        Raises
        ------
        KeyError, TypeError, ValueError
            If the record does not have the layout above.
        InvalidCoordinateError
            If values are out of range.
        """
        current = record["current"]
        location = record["location"]
        return cls.create(
            latitude=location["latitude"],
            longitude=location["longitude"],
            temperature=current["temperature2m"],
            wind_speed=current["windSpeed10m"],
            wind_direction=current["windDirection10m"],
            timezone_label=location.get("timezoneAbbreviation"),
        )

    def to_record(self) -> dict[str, Any]:
        """Inverse of :meth:`from_record`."""
        return {
            "current": {
                "temperature2m": self.measurement.temperature,
                "windSpeed10m": self.measurement.wind_speed,
                "windDirection10m": self.measurement.wind_direction,
            },
            "location": {
                "latitude": self.location.latitude,
                "longitude": self.location.longitude,
                "timezoneAbbreviation": self.location.timezone_label,
            },
        }

    def summary(self) -> str:
        """Two-line hover text: temperature and wind speed."""
        return (
            f"Temp: {self.measurement.temperature:.1f}°C\n"
            f"Wind: {self.measurement.wind_speed:.1f} m/s"
        )

    @property
    def latitude(self) -> float:
        return self.location.latitude

    @property
    def longitude(self) -> float:
        return self.location.longitude


# ---------------------------------------------------------------------------
# Particle
# ---------------------------------------------------------------------------

MAX_TRAIL_LENGTH = 10


@dataclass
class Particle:
    """A simulated wind tracer.

    ``wind_speed``/``wind_direction`` are the smoothed (carried) values,
    not raw observations. ``trail`` holds up to ``MAX_TRAIL_LENGTH`` prior
    positions as ``(lat, lon)`` pairs, oldest first.
    """
    latitude: float
    longitude: float
    wind_speed: float = 0.0
    wind_direction: float = 0.0
    opacity: float = 0.5
    color: Color = WHITE
    trail: deque = field(default_factory=lambda: deque(maxlen=MAX_TRAIL_LENGTH))
    last_pixel: Optional[Pixel] = None
    cartesian: tuple[float, float, float] = (1.0, 0.0, 0.0)

    @classmethod
    def random(
        cls,
        rng: np.random.Generator,
        max_trail: int = MAX_TRAIL_LENGTH,
    ) -> "Particle":
        """Spawn a windless particle at a uniform-random lat/lon."""
        lat = float(rng.uniform(-90.0, 90.0))
        lon = float(rng.uniform(-180.0, 180.0))
        return cls(
            latitude=lat,
            longitude=lon,
            trail=deque(maxlen=max_trail),
            cartesian=to_cartesian(lat, lon),
        )

    def refresh_cartesian(self) -> tuple[float, float, float]:
        """Recompute the unit-sphere triple from the current position."""
        self.cartesian = to_cartesian(self.latitude, self.longitude)
        return self.cartesian


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class FieldConfig:
    """Tunables for the particle field and its scheduler."""
    num_particles: int = 50000
    respawn_fraction: float = 0.02      # fraction recycled per update call
    blend_factor: float = 0.05          # exponential smoothing per update call
    speed_multiplier: float = 15.0      # visual time acceleration
    max_trail_length: int = MAX_TRAIL_LENGTH
    trail_opacity: float = 0.3
    trail_width: float = 1.0
    ticks_per_second: int = 30
    min_lon_scale: float = 0.01         # cos(lat) below which lon is frozen
    projection: str = "mercator"        # "mercator" or "equirectangular"
    vectorized_queries: bool = True     # one bulk nearest query per frame
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.num_particles < 0:
            raise ValueError(f"num_particles must be >= 0, got {self.num_particles}")
        for name in ("respawn_fraction", "blend_factor", "trail_opacity"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if self.max_trail_length < 1:
            raise ValueError(
                f"max_trail_length must be >= 1, got {self.max_trail_length}"
            )
        if self.ticks_per_second <= 0:
            raise ValueError(
                f"ticks_per_second must be > 0, got {self.ticks_per_second}"
            )
        if self.speed_multiplier < 0:
            raise ValueError(
                f"speed_multiplier must be >= 0, got {self.speed_multiplier}"
            )
        if self.projection not in ("mercator", "equirectangular"):
            raise ValueError(f"Unknown projection '{self.projection}'")


# ---------------------------------------------------------------------------
# Draw commands
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DrawLine:
    """A straight trail segment between two pixels."""
    start: Pixel
    end: Pixel
    color: Color
    opacity: float
    width: float


@dataclass(frozen=True)
class DrawSquare:
    """A filled particle head centred on a pixel."""
    center: Pixel
    size: int
    color: Color
    opacity: float


@runtime_checkable
class Renderer(Protocol):
    """Drawing collaborator that receives a frame's draw commands."""

    def begin_frame(self, width: int, height: int) -> None:
        """Clear the surface for a new frame of the given size."""

    def draw_line(self, start: Pixel, end: Pixel, color: Color,
                  opacity: float, width: float) -> None: ...

    def draw_filled_square(self, center: Pixel, size: int, color: Color,
                           opacity: float) -> None: ...
