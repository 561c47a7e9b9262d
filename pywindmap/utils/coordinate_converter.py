"""Geographic ↔ screen-pixel conversion for the map viewport.

Two cylindrical projections are supported, both scaled so the full
longitude range spans the viewport width and centred on the viewport:

* ``"mercator"``: ``y = cy - s * ln(tan(π/4 + φ/2))``
* ``"equirectangular"``: ``y = cy - s * φ``

with ``s = width / 2π``. Converters are cheap to use but are recreated
only when the viewport size changes (see :class:`ConverterCache`).

Also derives the real-world length of a horizontal pixel span for the map
scale bar.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Optional

from pywindmap.core.geo import great_circle_distance
from pywindmap.core.models import GeoCoordinate, OffMapWarning

logger = logging.getLogger(__name__)

# Web-Mercator latitude limit (square world map)
MAX_MERCATOR_LATITUDE = 85.05112877980659
# Forward projection clamp keeping Mercator y finite near the poles
PIXEL_LATITUDE_LIMIT = 89.999

PROJECTIONS = ("mercator", "equirectangular")


class CoordinateConverter:
    """Bidirectional geo/pixel mapping for one viewport size.

    Parameters
    ----------
    width, height : float
        Viewport size in pixels.
    projection : str
        ``"mercator"`` (default) or ``"equirectangular"``.
    """

    def __init__(self, width: float, height: float, projection: str = "mercator") -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Viewport must be positive, got {width}x{height}")
        if projection not in PROJECTIONS:
            raise ValueError(f"Unknown projection '{projection}'")
        self.width = width
        self.height = height
        self.projection = projection
        self.scale = width / (2.0 * math.pi)
        self._cx = width / 2.0
        self._cy = height / 2.0
        if projection == "mercator":
            self._lat_limit = MAX_MERCATOR_LATITUDE
        else:
            self._lat_limit = 90.0

    def to_pixel(self, lat: float, lon: float) -> tuple[float, float]:
        """Project (lat, lon) in degrees to viewport pixel (x, y).

        Points outside the visible map project off-canvas; they are not
        clipped.
        """
        lam = math.radians(lon)
        x = self._cx + self.scale * lam
        if self.projection == "mercator":
            lat = max(-PIXEL_LATITUDE_LIMIT, min(PIXEL_LATITUDE_LIMIT, lat))
            phi = math.radians(lat)
            y = self._cy - self.scale * math.log(math.tan(math.pi / 4.0 + phi / 2.0))
        else:
            y = self._cy - self.scale * math.radians(lat)
        return x, y

    def to_geo(self, x: float, y: float) -> Optional[GeoCoordinate]:
        """Invert a viewport pixel to a geographic coordinate.

        Returns
        -------
        GeoCoordinate or None
            ``None`` when the pixel is off-canvas, not finite, or inverts
            outside the projection's valid latitude/longitude domain.
        """
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        if x < 0.0 or x > self.width or y < 0.0 or y > self.height:
            return None

        lon = math.degrees((x - self._cx) / self.scale)
        v = (self._cy - y) / self.scale
        if self.projection == "mercator":
            lat = math.degrees(2.0 * math.atan(math.exp(v)) - math.pi / 2.0)
        else:
            lat = math.degrees(v)

        if abs(lon) > 180.0 or abs(lat) > self._lat_limit:
            return None
        return GeoCoordinate(latitude=lat, longitude=lon)


class ConverterCache:
    """Remembers the converter for the most recent viewport size.

    A new :class:`CoordinateConverter` is built only when the requested
    ``(width, height, projection)`` differs from the cached one or after
    :meth:`invalidate` (viewport resize).
    """

    def __init__(self) -> None:
        self._converter: Optional[CoordinateConverter] = None
        self.builds = 0

    def get(self, width: float, height: float, projection: str = "mercator") -> CoordinateConverter:
        conv = self._converter
        if (conv is not None and conv.width == width and conv.height == height
                and conv.projection == projection):
            return conv

        logger.info("Creating new %s projection for %sx%s", projection, width, height)
        conv = CoordinateConverter(width, height, projection)
        self._converter = conv
        self.builds += 1
        return conv

    def invalidate(self) -> None:
        """Drop the cached converter."""
        self._converter = None


_default_cache = ConverterCache()


def make_converter(width: float, height: float, projection: str = "mercator") -> CoordinateConverter:
    """Return a converter for the viewport, memoised on its size."""
    return _default_cache.get(width, height, projection)


# -----------------------------------------------------------------------
# Scale bar
# -----------------------------------------------------------------------

def real_world_span_meters(
    pixel_length: float,
    at_pixel_y: float,
    converter: CoordinateConverter,
) -> float:
    """Great-circle length (m) of a horizontal pixel segment.

    The segment is *pixel_length* wide, centred horizontally in the
    viewport at row *at_pixel_y*.

    Returns
    -------
    float
        Distance in metres, or ``0.0`` if either endpoint is off the map.
    """
    start_x = converter.width / 2.0 - pixel_length / 2.0
    end_x = converter.width / 2.0 + pixel_length / 2.0

    geo_start = converter.to_geo(start_x, at_pixel_y)
    geo_end = converter.to_geo(end_x, at_pixel_y)
    if geo_start is None or geo_end is None:
        logger.debug("Scale segment at y=%s is off the projected map", at_pixel_y)
        warnings.warn(
            f"Scale segment of {pixel_length}px at y={at_pixel_y} is off the map",
            OffMapWarning,
            stacklevel=2,
        )
        return 0.0

    return great_circle_distance(
        geo_start.latitude, geo_start.longitude,
        geo_end.latitude, geo_end.longitude,
    )


def format_scale_label(meters: float) -> str:
    """Human-readable scale text: whole km above 1 km, else metres to 10 m."""
    if meters <= 0:
        return ""
    if meters >= 1000.0:
        return f"{int(math.floor(meters / 1000.0 + 0.5))} km"
    return f"{int(math.floor(meters / 10.0 + 0.5)) * 10} m"


def scale_bar(
    converter: CoordinateConverter,
    bar_pixels: float = 100.0,
    y_fraction: float = 0.95,
) -> tuple[float, str]:
    """Distance and label for a scale bar drawn near the bottom of the map."""
    meters = real_world_span_meters(bar_pixels, converter.height * y_fraction, converter)
    return meters, format_scale_label(meters)
