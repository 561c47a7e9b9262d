"""Raster renderer backed by matplotlib.

Draws a frame's trail segments and particle heads onto a figure sized to
the viewport, with the pixel origin at the top-left like a canvas. Useful
for snapshots and offline frame dumps; requires ``matplotlib``.

Figures are built with :class:`matplotlib.figure.Figure` directly, not
through ``pyplot``, so the process-wide backend is left untouched.
"""

from __future__ import annotations

from typing import Any, Optional

from pywindmap.core.models import Color, Pixel

_DPI = 100


def _rgba(color: Color, opacity: float) -> tuple[float, float, float, float]:
    r, g, b = color
    return (r / 255.0, g / 255.0, b / 255.0, max(0.0, min(1.0, opacity)))


class MatplotlibRenderer:
    """Renderer that accumulates one frame on a matplotlib Axes.

    Parameters
    ----------
    background : str
        Figure face colour.
    """

    def __init__(self, background: str = "black") -> None:
        try:
            from matplotlib.figure import Figure
        except ImportError as e:  # pragma: no cover
            raise ImportError("matplotlib is required for MatplotlibRenderer") from e

        self._figure_cls = Figure
        self.background = background
        self.fig: Optional[Any] = None
        self.ax: Optional[Any] = None
        self._segments: list[tuple[Pixel, Pixel]] = []
        self._segment_colors: list[tuple[float, float, float, float]] = []
        self._segment_widths: list[float] = []
        self._squares: list[tuple[Pixel, int, tuple[float, float, float, float]]] = []
        self.frame_size: Optional[tuple[int, int]] = None

    def begin_frame(self, width: int, height: int) -> None:
        self.fig = self._figure_cls(figsize=(width / _DPI, height / _DPI), dpi=_DPI)
        self.fig.patch.set_facecolor(self.background)
        self.ax = self.fig.add_axes((0, 0, 1, 1))
        self.ax.set_xlim(0, width)
        self.ax.set_ylim(height, 0)
        self.ax.set_axis_off()
        self._segments = []
        self._segment_colors = []
        self._segment_widths = []
        self._squares = []
        self.frame_size = (width, height)

    def draw_line(self, start: Pixel, end: Pixel, color: Color,
                  opacity: float, width: float) -> None:
        self._segments.append((start, end))
        self._segment_colors.append(_rgba(color, opacity))
        self._segment_widths.append(width)

    def draw_filled_square(self, center: Pixel, size: int, color: Color,
                           opacity: float) -> None:
        self._squares.append((center, size, _rgba(color, opacity)))

    def flush(self) -> None:
        """Push the accumulated primitives onto the axes."""
        if self.ax is None:
            raise RuntimeError("begin_frame() must be called before flush()")
        from matplotlib.collections import LineCollection, PatchCollection
        from matplotlib.patches import Rectangle

        if self._segments:
            self.ax.add_collection(LineCollection(
                self._segments,
                colors=self._segment_colors,
                linewidths=self._segment_widths,
            ))
        if self._squares:
            patches = [
                Rectangle((cx - size / 2.0, cy - size / 2.0), size, size)
                for (cx, cy), size, _ in self._squares
            ]
            self.ax.add_collection(PatchCollection(
                patches,
                facecolors=[rgba for _, _, rgba in self._squares],
                edgecolors="none",
            ))
        self._segments, self._segment_colors, self._segment_widths = [], [], []
        self._squares = []

    def save(self, output_path: str) -> None:
        """Flush and write the current frame to an image file."""
        self.flush()
        self.fig.savefig(output_path, dpi=_DPI, facecolor=self.background)

    def close(self) -> None:
        self.fig = None
        self.ax = None
