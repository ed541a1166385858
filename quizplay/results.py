from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .session import Session

MAX_NORMALIZED_SCORE = 100


class AttemptStatus(StrEnum):
    CORRECT = "correct"
    WRONG = "wrong"
    SKIPPED = "skipped"


class CompletionReason(StrEnum):
    ITEMS_EXHAUSTED = "items_exhausted"
    LIVES_EXHAUSTED = "lives_exhausted"
    TIME_EXPIRED = "time_expired"
    FINALIZED = "finalized"


@dataclass(frozen=True, slots=True)
class AttemptRecord:
    """One evaluated (or skipped) response.

    Column-match and hotspot items can collect several records; every other
    variant has at most one.
    """

    seq: int
    item_id: str
    response: str
    status: AttemptStatus
    points_awarded: int
    lives_cost: int
    at_s: float


@dataclass(frozen=True, slots=True)
class SessionResult:
    normalized_score: int
    passed: bool
    elapsed_seconds: int
    raw_score: int
    max_raw_score: int
    reason: CompletionReason


@dataclass(frozen=True, slots=True)
class ResultRecord:
    """Persistable outcome of a finished session."""

    user_id: str | None
    content_id: str
    normalized_score: int
    max_score: int
    passed: bool
    elapsed_seconds: int
    evaluation_event_id: str | None

    raw_score: int
    max_raw_score: int
    reason: CompletionReason
    lives_remaining: int | None

    focus_losses: int | None = None
    suspicious: bool | None = None
    clipboard_attempts: int | None = None

    attempts: tuple[AttemptRecord, ...] = ()


class ResultsStore(Protocol):
    def save_result(self, record: ResultRecord) -> object: ...


def normalize_score(raw_score: int, max_score: int) -> int:
    """round(raw / max * 100) with halves rounded up, clamped to [0, 100]."""

    if max_score <= 0:
        return 0
    # Integer form of floor(raw * 100 / max + 0.5).
    value = (200 * max(0, raw_score) + max_score) // (2 * max_score)
    return max(0, min(MAX_NORMALIZED_SCORE, value))


def result_record_from_session(session: "Session") -> ResultRecord:
    """Build a ResultRecord from a completed Session."""

    result = session.result
    assert result is not None
    integrity = session.integrity_summary()
    bundle = session.bundle
    assert bundle is not None
    return ResultRecord(
        user_id=session.user_id,
        content_id=bundle.content_id,
        normalized_score=int(result.normalized_score),
        max_score=MAX_NORMALIZED_SCORE,
        passed=bool(result.passed),
        elapsed_seconds=int(result.elapsed_seconds),
        evaluation_event_id=session.evaluation_event_id,
        raw_score=int(result.raw_score),
        max_raw_score=int(result.max_raw_score),
        reason=result.reason,
        lives_remaining=session.lives,
        focus_losses=int(integrity.focus_losses),
        suspicious=bool(integrity.suspicious),
        clipboard_attempts=int(integrity.clipboard_attempts),
        attempts=session.attempts(),
    )
