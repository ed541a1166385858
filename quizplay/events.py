"""Evaluation events: an instructor-issued access code that opens a content for a
fixed time window and links every finished session to the event."""

from __future__ import annotations

import datetime as dt
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from .clock import Clock
from .config import EngineConfig
from .content import ContentRepository
from .errors import ConfigurationError, EventNotFound, EventNotOpen
from .results import ResultsStore
from .rewards import RewardNotifier
from .session import Session

logger = logging.getLogger(__name__)


def normalize_access_code(code: str) -> str:
    return (code or "").strip().upper()


@dataclass(frozen=True, slots=True)
class EvaluationEvent:
    event_id: str
    access_code: str
    content_id: str
    starts_at: dt.datetime
    ends_at: dt.datetime
    title: str = ""

    def __post_init__(self) -> None:
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")

    def is_open(self, now: dt.datetime) -> bool:
        return self.starts_at <= now <= self.ends_at

    def check_open(self, now: dt.datetime) -> None:
        if now < self.starts_at:
            raise EventNotOpen(self.event_id, reason="not_started")
        if now > self.ends_at:
            raise EventNotOpen(self.event_id, reason="ended")


def _parse_instant(value: object, field: str) -> dt.datetime:
    if not isinstance(value, str):
        raise ConfigurationError(f"{field} must be an ISO-8601 string")
    try:
        parsed = dt.datetime.fromisoformat(value)
    except ValueError as exc:
        raise ConfigurationError(f"{field}: {exc}") from exc
    # Naive times are UTC.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def evaluation_event_from_dict(data: dict[str, object]) -> EvaluationEvent:
    try:
        event_id = str(data["event_id"]).strip()
        access_code = str(data["access_code"]).strip()
        content_id = str(data["content_id"]).strip()
    except KeyError as exc:
        raise ConfigurationError(f"evaluation event missing {exc.args[0]!r}") from exc
    if not event_id or not access_code or not content_id:
        raise ConfigurationError("evaluation event needs event_id, access_code and content_id")
    starts_at = _parse_instant(data.get("starts_at"), "starts_at")
    ends_at = _parse_instant(data.get("ends_at"), "ends_at")
    try:
        return EvaluationEvent(
            event_id=event_id,
            access_code=access_code,
            content_id=content_id,
            starts_at=starts_at,
            ends_at=ends_at,
            title=str(data.get("title") or ""),
        )
    except ValueError as exc:
        raise ConfigurationError(f"{event_id}: {exc}") from exc


class EvaluationEventBook:
    def __init__(self, events: list[EvaluationEvent] | None = None) -> None:
        self._by_code: dict[str, EvaluationEvent] = {}
        for event in events or []:
            self.add(event)

    @classmethod
    def from_json(cls, path: Path) -> "EvaluationEventBook":
        """Load a JSON list of events (ISO-8601 times; naive times are UTC).

        Malformed files raise ConfigurationError.
        """

        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"{path.name}: {exc}") from exc
        if not isinstance(raw, list) or not all(isinstance(e, dict) for e in raw):
            raise ConfigurationError(f"{path.name}: expected a list of event objects")
        events = [evaluation_event_from_dict(e) for e in raw]
        try:
            book = cls(events)
        except ValueError as exc:
            raise ConfigurationError(f"{path.name}: {exc}") from exc
        logger.info("evaluation_events_loaded: file=%s count=%s", path.name, len(events))
        return book

    def __len__(self) -> int:
        return len(self._by_code)

    def add(self, event: EvaluationEvent) -> None:
        code = normalize_access_code(event.access_code)
        if code in self._by_code:
            raise ValueError(f"duplicate access code {code!r}")
        self._by_code[code] = event

    def resolve(self, access_code: str, *, now: dt.datetime) -> EvaluationEvent:
        """Return the open event for ``access_code``.

        Raises EventNotFound for unknown codes and EventNotOpen outside the window.
        """

        event = self._by_code.get(normalize_access_code(access_code))
        if event is None:
            raise EventNotFound(access_code)
        event.check_open(now)
        return event


def start_event_session(
    book: EvaluationEventBook,
    access_code: str,
    *,
    now: dt.datetime,
    repository: ContentRepository,
    clock: Clock,
    seed: int,
    config: EngineConfig | None = None,
    results_store: ResultsStore | None = None,
    reward_notifier: RewardNotifier | None = None,
    user_id: str | None = None,
) -> Session:
    """Open the event's content in a new session linked to the event.

    Window and repository errors propagate; nothing is created on failure.
    """

    event = book.resolve(access_code, now=now)
    session = Session(
        clock=clock,
        seed=seed,
        config=config,
        results_store=results_store,
        reward_notifier=reward_notifier,
        user_id=user_id,
        evaluation_event_id=event.event_id,
    )
    session.load(repository, event.content_id)
    logger.info("event_session_started: event_id=%s content_id=%s", event.event_id, event.content_id)
    return session
