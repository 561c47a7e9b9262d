"""In-memory renderer that records a frame's draw commands."""

from __future__ import annotations

from typing import Optional, Union

from pywindmap.core.models import Color, DrawLine, DrawSquare, Pixel

DrawCommand = Union[DrawLine, DrawSquare]


class CommandRecorder:
    """Collects :class:`DrawLine`/:class:`DrawSquare` commands.

    ``begin_frame`` clears the previous frame, so ``commands`` always holds
    the most recent frame only. Set ``size`` to emulate a surface whose
    dimensions can drift from the field's viewport.
    """

    def __init__(self, size: Optional[tuple[int, int]] = None) -> None:
        self.commands: list[DrawCommand] = []
        self.frames = 0
        self.frame_size: Optional[tuple[int, int]] = None
        self.size = size

    def begin_frame(self, width: int, height: int) -> None:
        self.commands = []
        self.frames += 1
        self.frame_size = (width, height)

    def draw_line(self, start: Pixel, end: Pixel, color: Color,
                  opacity: float, width: float) -> None:
        self.commands.append(DrawLine(start, end, color, opacity, width))

    def draw_filled_square(self, center: Pixel, size: int, color: Color,
                           opacity: float) -> None:
        self.commands.append(DrawSquare(center, size, color, opacity))

    @property
    def lines(self) -> list[DrawLine]:
        return [c for c in self.commands if isinstance(c, DrawLine)]

    @property
    def squares(self) -> list[DrawSquare]:
        return [c for c in self.commands if isinstance(c, DrawSquare)]
