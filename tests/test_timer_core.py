from __future__ import annotations

from dataclasses import dataclass

import pytest

from quizplay.clock import SecondTicker
from quizplay.timer import Countdown


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def test_countdown_expires_after_total_ticks() -> None:
    cd = Countdown(total_s=3, warning_at_s=1)
    results = [cd.tick() for _ in range(3)]
    assert [r.remaining_s for r in results] == [2, 1, 0]
    assert results[-1].expired is True
    assert cd.expired is True
    # Further ticks are inert.
    assert cd.tick().remaining_s == 0


def test_warning_fires_once_per_crossing() -> None:
    cd = Countdown(total_s=8, warning_at_s=5)
    warnings = [cd.tick().warning for _ in range(6)]
    assert warnings == [False, False, True, False, False, False]


def test_extension_above_threshold_rearms_warning() -> None:
    cd = Countdown(total_s=6, warning_at_s=5)
    assert cd.tick().warning is True
    assert cd.extend(10) == 15
    fired = [cd.tick().warning for _ in range(10)]
    assert fired.count(True) == 1
    assert cd.remaining_s == 5


def test_start_inside_window_counts_as_warned() -> None:
    cd = Countdown(total_s=3, warning_at_s=5)
    assert not any(cd.tick().warning for _ in range(3))


def test_paused_ticks_change_nothing() -> None:
    cd = Countdown(total_s=5)
    cd.paused = True
    r = cd.tick()
    assert r.paused is True
    assert cd.remaining_s == 5
    cd.extend(2)
    assert cd.paused is True


def test_invalid_arguments() -> None:
    with pytest.raises(ValueError):
        Countdown(total_s=0)
    with pytest.raises(ValueError):
        Countdown(total_s=5).extend(0)


def test_second_ticker_carries_fractions() -> None:
    clock = FakeClock()
    ticker = SecondTicker(clock)
    clock.advance(0.5)
    assert ticker.poll() == 0
    clock.advance(0.75)
    assert ticker.poll() == 1
    clock.advance(0.75)
    assert ticker.poll() == 1
    clock.advance(3.0)
    assert ticker.poll() == 3
    ticker.reset()
    clock.advance(0.5)
    assert ticker.poll() == 0
