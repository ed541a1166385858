"""Advisory integrity signals: inattention and clipboard use.

Nothing here blocks an answer or touches the score. The host reports window
visibility and clipboard gestures; the monitor counts them, tells the session
when timing must pause, and raises a persistent suspicious flag once the
learner has left the window often enough.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .clock import Clock


class ClipboardAction(StrEnum):
    COPY = "copy"
    CUT = "cut"
    PASTE = "paste"


@dataclass(frozen=True, slots=True)
class ClipboardNotice:
    action: ClipboardAction
    count: int
    message: str


@dataclass(frozen=True, slots=True)
class IntegritySummary:
    focus_losses: int
    hidden_s: float
    suspicious: bool
    copy_attempts: int
    cut_attempts: int
    paste_attempts: int

    @property
    def clipboard_attempts(self) -> int:
        return self.copy_attempts + self.cut_attempts + self.paste_attempts


_CLIPBOARD_MESSAGES = {
    ClipboardAction.COPY: "Copying is not allowed during this activity.",
    ClipboardAction.CUT: "Cutting is not allowed during this activity.",
    ClipboardAction.PASTE: "Pasting is not allowed during this activity.",
}


class IntegrityMonitor:
    def __init__(self, *, clock: Clock, suspicious_after: int = 3) -> None:
        if suspicious_after <= 0:
            raise ValueError("suspicious_after must be > 0")
        self._clock = clock
        self._suspicious_after = int(suspicious_after)
        self._hidden_since_s: float | None = None
        self._returns = 0
        self._hidden_s = 0.0
        self._suspicious = False
        self._clipboard: dict[ClipboardAction, int] = {a: 0 for a in ClipboardAction}

    @property
    def inattentive(self) -> bool:
        return self._hidden_since_s is not None

    @property
    def suspicious(self) -> bool:
        return self._suspicious

    @property
    def focus_losses(self) -> int:
        return self._returns

    def focus_lost(self) -> bool:
        """Record that the window went hidden. Returns False if it already was."""

        if self._hidden_since_s is not None:
            return False
        self._hidden_since_s = self._clock.now()
        return True

    def focus_regained(self) -> bool:
        """Record a hidden -> visible transition.

        Returns True exactly once: on the transition that raises the
        suspicious flag.
        """

        if self._hidden_since_s is None:
            return False
        self._hidden_s += max(0.0, self._clock.now() - self._hidden_since_s)
        self._hidden_since_s = None
        self._returns += 1
        if not self._suspicious and self._returns >= self._suspicious_after:
            self._suspicious = True
            return True
        return False

    def clipboard_attempt(self, action: ClipboardAction) -> ClipboardNotice:
        self._clipboard[action] += 1
        return ClipboardNotice(
            action=action,
            count=self._clipboard[action],
            message=_CLIPBOARD_MESSAGES[action],
        )

    def summary(self) -> IntegritySummary:
        hidden_s = self._hidden_s
        if self._hidden_since_s is not None:
            hidden_s += max(0.0, self._clock.now() - self._hidden_since_s)
        return IntegritySummary(
            focus_losses=self._returns,
            hidden_s=hidden_s,
            suspicious=self._suspicious,
            copy_attempts=self._clipboard[ClipboardAction.COPY],
            cut_attempts=self._clipboard[ClipboardAction.CUT],
            paste_attempts=self._clipboard[ClipboardAction.PASTE],
        )
