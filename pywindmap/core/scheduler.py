"""Fixed-rate frame scheduling decoupled from display refresh.

The host calls :meth:`FrameScheduler.tick` on every refresh opportunity
(or lets :meth:`FrameScheduler.run` do it). The field is only updated once
``1000 / ticks_per_second`` milliseconds have passed since the previous
update, so the simulation rate stays fixed whatever the refresh rate.

Both the clock and the "request next frame" primitive are injectable.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from pywindmap.core.engine import ParticleField

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
FrameRequest = Callable[[Callable[[], bool]], None]

# Delay before a full redraw after the last resize event
RESIZE_DEBOUNCE_MS = 200.0


def monotonic_ms() -> float:
    """Default clock: monotonic wall time in milliseconds."""
    return time.monotonic() * 1000.0


class Debouncer:
    """Runs the most recently scheduled callback once things go quiet.

    Each :meth:`trigger` pushes the deadline back to ``now + delay_ms`` and
    replaces the pending callback; :meth:`poll` fires it once the deadline
    has passed.
    """

    def __init__(self, delay_ms: float = RESIZE_DEBOUNCE_MS, clock: Clock = monotonic_ms) -> None:
        self.delay_ms = delay_ms
        self._clock = clock
        self._deadline: Optional[float] = None
        self._callback: Optional[Callable[[], object]] = None

    def trigger(self, callback: Callable[[], object]) -> None:
        self._deadline = self._clock() + self.delay_ms
        self._callback = callback

    def cancel(self) -> None:
        self._deadline = None
        self._callback = None

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def poll(self) -> bool:
        """Fire the pending callback if its deadline has passed."""
        if self._callback is None or self._deadline is None:
            return False
        if self._clock() < self._deadline:
            return False
        callback = self._callback
        self.cancel()
        callback()
        return True


class FrameScheduler:
    """Drives ``field.update(elapsed_ms)`` at a fixed tick rate.

    Parameters
    ----------
    field : ParticleField
        The simulation to advance.
    ticks_per_second : int or None
        Target update rate; defaults to ``field.config.ticks_per_second``.
    clock : callable or None
        Returns the current time in milliseconds (default: monotonic).
    request_frame : callable or None
        ``request_frame(callback)`` asks the host to call *callback* on its
        next refresh opportunity. It must defer the call, not make it
        synchronously.
    """

    def __init__(
        self,
        field: ParticleField,
        ticks_per_second: Optional[int] = None,
        clock: Optional[Clock] = None,
        request_frame: Optional[FrameRequest] = None,
    ) -> None:
        tps = ticks_per_second or field.config.ticks_per_second
        if tps <= 0:
            raise ValueError(f"ticks_per_second must be > 0, got {tps}")
        self.field = field
        self.interval_ms = 1000.0 / tps
        self._clock = clock or monotonic_ms
        self._request_frame = request_frame
        self._last_tick: Optional[float] = None
        self.debouncer = Debouncer(RESIZE_DEBOUNCE_MS, self._clock)
        self.running = False
        self.ticks = 0
        self._looping = False

    def start(self) -> None:
        """Prime the reference time and request the first frame."""
        self._last_tick = self._clock()
        self.running = True
        logger.info("Frame scheduler started at %.1f ticks/s", 1000.0 / self.interval_ms)
        self._schedule_next()

    def stop(self) -> None:
        self.running = False
        logger.info("Frame scheduler stopped after %d ticks", self.ticks)

    def tick(self) -> bool:
        """Handle one refresh opportunity.

        Returns
        -------
        bool
            True if the field was updated on this call.
        """
        now = self._clock()
        if self._last_tick is None:
            self._last_tick = now

        self.debouncer.poll()

        ran = False
        elapsed = now - self._last_tick
        if elapsed >= self.interval_ms:
            self.field.update(elapsed)
            self._last_tick = now
            self.ticks += 1
            ran = True

        if self.running:
            self._schedule_next()
        return ran

    def _schedule_next(self) -> None:
        # run() drives tick itself, so the host must not get a second callback
        if self._request_frame is not None and not self._looping:
            self._request_frame(self.tick)

    def on_resize(self, width: int, height: int) -> None:
        """Viewport resize: invalidate projection now, redraw arrows later."""
        self.field.resize(width, height)
        self.debouncer.trigger(self.field.draw_observation_arrows)

    def run(
        self,
        max_frames: Optional[int] = None,
        frame_interval_s: float = 1.0 / 60.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """Blocking refresh loop for hosts without their own frame callback.

        Parameters
        ----------
        max_frames : int or None
            Stop after this many refresh opportunities (None = until
            :meth:`stop`).
        frame_interval_s : float
            Simulated display refresh period.
        sleep : callable
            Sleep primitive (injectable for tests).

        Returns
        -------
        int
            Number of field updates performed.
        """
        self.running = True
        if self._last_tick is None:
            self._last_tick = self._clock()
        start_ticks = self.ticks
        frames = 0
        self._looping = True
        try:
            while self.running and (max_frames is None or frames < max_frames):
                sleep(frame_interval_s)
                self.tick()
                frames += 1
        finally:
            self._looping = False
            self.running = False
        return self.ticks - start_ticks
