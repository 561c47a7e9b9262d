"""ParticleField — per-frame wind particle simulation for pywindmap.

Owns the particle population, the current spatial index snapshot and the
viewport converter, and runs one frame of the simulation per
:meth:`ParticleField.update` call:

    respawn → nearest observation → blend → advect → wrap → trail → draw

Refreshing observations swaps the index reference atomically; a frame
always runs against a single index snapshot.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Any, Iterable, Optional, Sequence

import numpy as np

from pywindmap.core.geo import to_cartesian_array
from pywindmap.core.models import (
    FieldConfig,
    MissingIndexWarning,
    Observation,
    Particle,
    Pixel,
    Renderer,
    ResizeRaceWarning,
)
from pywindmap.core.spatial_index import SpatialIndex
from pywindmap.physics.advection import blend_direction, blend_speed, displacement
from pywindmap.physics.boundary import wrap_position
from pywindmap.utils.coordinate_converter import ConverterCache, CoordinateConverter

logger = logging.getLogger(__name__)

# Observation arrow chevron half-size (px)
ARROW_SIZE = 4.0


def head_size(width: float, height: float) -> int:
    """Particle head size (px) for the smaller viewport dimension."""
    screen = min(width, height)
    if screen >= 768:
        return 3
    if screen >= 480:
        return 2
    return 1


class ParticleField:
    """Mutable set of wind particles driven by a nearest-observation field.

    Parameters
    ----------
    config : FieldConfig or None
        Simulation tunables; defaults to :class:`FieldConfig()`.
    renderer : Renderer or None
        Drawing collaborator. Without one, updates are skipped.
    viewport : tuple[int, int]
        Initial viewport size in pixels.
    rng : np.random.Generator or None
        Random source for spawning; defaults to ``default_rng(config.seed)``.
    index : SpatialIndex or None
        Initial observation index.
    arrow_renderer : Renderer or None
        Separate surface for the static observation-arrow layer.
    """

    def __init__(
        self,
        config: Optional[FieldConfig] = None,
        renderer: Optional[Renderer] = None,
        viewport: tuple[int, int] = (1280, 640),
        rng: Optional[np.random.Generator] = None,
        index: Optional[SpatialIndex] = None,
        arrow_renderer: Optional[Renderer] = None,
    ) -> None:
        self.config = config or FieldConfig()
        self.renderer = renderer
        self.arrow_renderer = arrow_renderer
        self._rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self._particles: list[Particle] = []
        self._index: Optional[SpatialIndex] = index
        self._width, self._height = viewport
        self._converters = ConverterCache()
        self._converter: Optional[CoordinateConverter] = None
        self._reported: set[str] = set()
        self.needs_redraw = True
        self.frame_count = 0

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def initialize(self, count: Optional[int] = None) -> None:
        """Populate *count* particles at uniform-random positions.

        Replaces any existing population.
        """
        if count is None:
            count = self.config.num_particles
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        self._particles = self._spawn(count)
        logger.info("Wind layer initialized with %d particles", len(self._particles))

    def _spawn(self, count: int) -> list[Particle]:
        max_trail = self.config.max_trail_length
        return [Particle.random(self._rng, max_trail) for _ in range(count)]

    def _respawn(self) -> int:
        """Recycle the oldest fixed fraction of the population."""
        n = int(math.floor(len(self._particles) * self.config.respawn_fraction))
        if n > 0:
            del self._particles[:n]
            self._particles.extend(self._spawn(n))
        return n

    def clear(self) -> None:
        """Remove all particles and clear the drawing surface."""
        self._particles = []
        if self.renderer is not None:
            self.renderer.begin_frame(self._width, self._height)
        logger.info("Wind layer cleared.")

    @property
    def particles(self) -> Sequence[Particle]:
        """Current particles, oldest first."""
        return tuple(self._particles)

    def __len__(self) -> int:
        return len(self._particles)

    # ------------------------------------------------------------------
    # Observation index lifecycle
    # ------------------------------------------------------------------

    @property
    def index(self) -> Optional[SpatialIndex]:
        return self._index

    def set_index(self, index: Optional[SpatialIndex]) -> None:
        """Swap in a prebuilt index (takes effect from the next frame)."""
        self._index = index
        self._reported.discard("index")
        self.needs_redraw = True

    def refresh(self, observations: Iterable[Observation]) -> SpatialIndex:
        """Rebuild the index from a new observation batch.

        Raises
        ------
        EmptyInputError
            If the batch has no usable observations; the previous index, if
            any, stays in use.
        """
        index = SpatialIndex.build(observations)
        self.set_index(index)
        return index

    def nearest_observation(self, geo_point: Any) -> Optional[tuple[Observation, float]]:
        """Nearest observation to a geographic point, or None without an index."""
        index = self._index
        if index is None:
            self._report_once(
                "query", "Nearest-observation query before any index was built",
                MissingIndexWarning,
            )
            return None
        return index.nearest_observation(geo_point)

    def observation_at_pixel(self, x: float, y: float) -> Optional[tuple[Observation, float]]:
        """Hover lookup: invert a viewport pixel and find the nearest observation."""
        geo = self.converter.to_geo(x, y)
        if geo is None:
            return None
        return self.nearest_observation(geo)

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    @property
    def viewport(self) -> tuple[int, int]:
        return self._width, self._height

    def resize(self, width: int, height: int) -> None:
        """Viewport resize event: drop the cached converter."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Viewport must be positive, got {width}x{height}")
        self._width, self._height = width, height
        self._converters.invalidate()
        self._converter = None
        self.needs_redraw = True

    @property
    def converter(self) -> CoordinateConverter:
        """Converter for the current viewport, rebuilt only on size change."""
        conv = self._converter
        if conv is None or conv.width != self._width or conv.height != self._height:
            conv = self._converters.get(self._width, self._height, self.config.projection)
            self._converter = conv
        return conv

    def _sync_viewport(self) -> bool:
        """Adopt the renderer's surface size if it drifted from ours.

        Returns False when the surface has no drawable area.
        """
        size = getattr(self.renderer, "size", None)
        if size is None:
            return True
        width, height = size
        if width <= 0 or height <= 0:
            self._report_once(
                "surface", f"Surface is {width}x{height}, skipping wind particle redraw.",
            )
            return False
        if (width, height) != (self._width, self._height):
            logger.warning(
                "Surface is %sx%s but viewport is %sx%s; re-deriving converter",
                width, height, self._width, self._height,
            )
            warnings.warn(
                f"Stale viewport {self._width}x{self._height}, surface is {width}x{height}",
                ResizeRaceWarning,
                stacklevel=3,
            )
            self.resize(width, height)
        self._reported.discard("surface")
        return True

    # ------------------------------------------------------------------
    # Frame update
    # ------------------------------------------------------------------

    def update(self, elapsed_ms: float) -> int:
        """Advance and draw one frame.

        Never raises; failures are logged and the affected work skipped.

        Parameters
        ----------
        elapsed_ms : float
            Wall-clock milliseconds since the previous frame.

        Returns
        -------
        int
            Number of particles advanced this frame.
        """
        try:
            return self._update(elapsed_ms)
        except Exception:
            logger.exception("Wind particle update failed; frame skipped")
            return 0

    def _update(self, elapsed_ms: float) -> int:
        renderer = self.renderer
        if renderer is None:
            self._report_once("renderer", "No renderer attached, skipping wind particle redraw.")
            return 0

        # Snapshot: a refresh during this frame only affects the next one.
        index = self._index
        if index is None:
            self._report_once(
                "index", "Weather data index not available, skipping wind particle redraw.",
                MissingIndexWarning,
            )
            renderer.begin_frame(self._width, self._height)
            return 0

        if not self._sync_viewport():
            return 0
        converter = self.converter
        renderer.begin_frame(self._width, self._height)

        self._respawn()

        scaled_elapsed = elapsed_ms * self.config.speed_multiplier
        size = head_size(self._width, self._height)

        if self.config.vectorized_queries:
            nearest = self._bulk_nearest(index)
        else:
            nearest = None

        advanced = 0
        for i, particle in enumerate(self._particles):
            try:
                if nearest is not None:
                    obs = nearest[i]
                    if obs is None:
                        continue
                else:
                    particle.refresh_cartesian()
                    found = index.nearest(particle, 1)
                    if not found:
                        continue
                    obs = found[0][0]
                self._advance(particle, obs, scaled_elapsed, converter, renderer, size)
                advanced += 1
            except (ArithmeticError, ValueError, TypeError) as e:
                self._report_once("particle", f"Particle update failed: {e}")
                logger.debug("Skipping particle %d", i, exc_info=True)

        self.needs_redraw = False
        self.frame_count += 1
        return advanced

    def _bulk_nearest(self, index: SpatialIndex) -> list[Optional[Observation]]:
        """Refresh every particle's cartesian and resolve all nearest in one call."""
        particles = self._particles
        if not particles:
            return []
        lats = np.fromiter((p.latitude for p in particles), dtype=np.float64, count=len(particles))
        lons = np.fromiter((p.longitude for p in particles), dtype=np.float64, count=len(particles))
        xyz = to_cartesian_array(lats, lons)
        for particle, row in zip(particles, xyz.tolist()):
            particle.cartesian = (row[0], row[1], row[2])

        indices, _ = index.nearest_many(xyz)
        observations = index.observations
        n = len(observations)
        return [observations[j] if j < n else None for j in indices.tolist()]

    def _advance(
        self,
        particle: Particle,
        obs: Observation,
        scaled_elapsed: float,
        converter: CoordinateConverter,
        renderer: Renderer,
        size: int,
    ) -> None:
        cfg = self.config
        m = obs.measurement

        # --- Blend carried wind toward the observation ---
        particle.wind_speed = blend_speed(particle.wind_speed, m.wind_speed, cfg.blend_factor)
        particle.wind_direction = blend_direction(
            particle.wind_direction, m.wind_direction, cfg.blend_factor,
        )
        particle.color = obs.color
        particle.opacity = obs.opacity

        # --- Advect and wrap ---
        prev_lat, prev_lon = particle.latitude, particle.longitude
        dlat, dlon = displacement(
            particle.wind_speed, particle.wind_direction, prev_lat,
            scaled_elapsed, cfg.min_lon_scale,
        )
        lat, lon, wrapped = wrap_position(prev_lat + dlat, prev_lon + dlon)
        particle.latitude, particle.longitude = lat, lon

        pixel = converter.to_pixel(lat, lon)
        particle.last_pixel = pixel

        # --- Trail ---
        if wrapped:
            particle.trail.clear()
        else:
            particle.trail.append((prev_lat, prev_lon))

        if not wrapped and len(particle.trail) > 1:
            self._draw_trail(particle, pixel, converter, renderer)

        renderer.draw_filled_square(pixel, size, particle.color, particle.opacity)

    def _draw_trail(
        self,
        particle: Particle,
        head: Pixel,
        converter: CoordinateConverter,
        renderer: Renderer,
    ) -> None:
        """Faded polyline from the head back through the trail, newest first."""
        cfg = self.config
        prev = head
        for lat, lon in reversed(particle.trail):
            point = converter.to_pixel(lat, lon)
            renderer.draw_line(prev, point, particle.color, cfg.trail_opacity, cfg.trail_width)
            prev = point

    # ------------------------------------------------------------------
    # Static observation layer
    # ------------------------------------------------------------------

    def draw_observation_arrows(self, renderer: Optional[Renderer] = None) -> int:
        """Draw one chevron per observation, rotated to its wind direction.

        Returns the number of arrows drawn.
        """
        renderer = renderer or self.arrow_renderer
        index = self._index
        if renderer is None or index is None:
            return 0

        converter = self.converter
        renderer.begin_frame(self._width, self._height)
        for obs in index.observations:
            x, y = converter.to_pixel(obs.latitude, obs.longitude)
            angle = math.radians(obs.measurement.wind_direction)
            cos_a, sin_a = math.cos(angle), math.sin(angle)

            def _rotated(dx: float, dy: float) -> Pixel:
                return (x + dx * cos_a - dy * sin_a, y + dx * sin_a + dy * cos_a)

            tip = (x, y)
            renderer.draw_line(_rotated(-ARROW_SIZE, -ARROW_SIZE), tip, obs.color, obs.opacity, 1.0)
            renderer.draw_line(tip, _rotated(-ARROW_SIZE, ARROW_SIZE), obs.color, obs.opacity, 1.0)
        self.needs_redraw = False
        return len(index.observations)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _report_once(
        self,
        key: str,
        message: str,
        category: Optional[type[Warning]] = None,
    ) -> None:
        """Log (and optionally warn) the first time *key* occurs."""
        if key in self._reported:
            logger.debug(message)
            return
        self._reported.add(key)
        logger.warning(message)
        if category is not None:
            warnings.warn(message, category, stacklevel=3)
