from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TickResult:
    remaining_s: int
    warning: bool = False
    expired: bool = False
    paused: bool = False


class Countdown:
    """Whole-second countdown with an explicit pause flag.

    - One ``tick()`` per wall-clock second; paused ticks change nothing.
    - The low-time warning fires once per crossing of ``warning_at_s``. An
      extension that lifts the budget back above the threshold re-arms it.
    - ``extend()`` never clears ``paused``.
    """

    def __init__(self, *, total_s: int, warning_at_s: int = 5) -> None:
        if total_s <= 0:
            raise ValueError("total_s must be > 0")
        if warning_at_s < 0:
            raise ValueError("warning_at_s must be >= 0")
        self._remaining_s = int(total_s)
        self._warning_at_s = int(warning_at_s)
        # Starting inside the warning window counts as already warned.
        self._warned = self._remaining_s <= self._warning_at_s
        self.paused = False

    @property
    def remaining_s(self) -> int:
        return self._remaining_s

    @property
    def expired(self) -> bool:
        return self._remaining_s <= 0

    def tick(self) -> TickResult:
        if self.expired:
            return TickResult(remaining_s=0, expired=True)
        if self.paused:
            return TickResult(remaining_s=self._remaining_s, paused=True)

        self._remaining_s -= 1
        warning = False
        if not self._warned and 0 < self._remaining_s <= self._warning_at_s:
            self._warned = True
            warning = True
        return TickResult(remaining_s=self._remaining_s, warning=warning, expired=self._remaining_s <= 0)

    def extend(self, seconds: int) -> int:
        if seconds <= 0:
            raise ValueError("seconds must be > 0")
        if self.expired:
            return 0
        self._remaining_s += int(seconds)
        if self._remaining_s > self._warning_at_s:
            self._warned = False
        return self._remaining_s
