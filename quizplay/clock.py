from __future__ import annotations

import math
import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class SecondTicker:
    """Turns a monotonic clock into whole-second ticks.

    A frame-driven host calls :meth:`poll` every frame and delivers one
    ``Session.tick()`` per returned second. Fractions carry over between polls,
    so a 60 FPS loop and a 1 FPS loop produce the same tick stream.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._anchor_s = clock.now()

    def poll(self) -> int:
        elapsed = self._clock.now() - self._anchor_s
        if elapsed < 1.0:
            return 0
        whole = int(math.floor(elapsed))
        self._anchor_s += float(whole)
        return whole

    def reset(self) -> None:
        self._anchor_s = self._clock.now()
