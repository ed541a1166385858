from __future__ import annotations

import datetime as dt
import json
from dataclasses import dataclass

import pytest

from quizplay.content import InMemoryContentRepository
from quizplay.errors import ConfigurationError, EventNotFound, EventNotOpen
from quizplay.events import EvaluationEvent, EvaluationEventBook, normalize_access_code, start_event_session
from quizplay.items import content_bundle_from_dict
from quizplay.session import SessionStatus

START = dt.datetime(2026, 3, 1, 9, 0, tzinfo=dt.timezone.utc)
END = dt.datetime(2026, 3, 1, 10, 0, tzinfo=dt.timezone.utc)


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t


@dataclass
class MemoryStore:
    records: list

    def save_result(self, record) -> int:
        self.records.append(record)
        return len(self.records)


def _book() -> EvaluationEventBook:
    return EvaluationEventBook([EvaluationEvent("ev-1", "ab12cd", "capitals", START, END, title="Midterm")])


def _repo() -> InMemoryContentRepository:
    bundle = content_bundle_from_dict(
        {
            "id": "capitals",
            "items": [{"id": "q1", "kind": "short_answer", "accepted": ["Madrid"]}],
        }
    )
    return InMemoryContentRepository([bundle])


def test_access_codes_are_normalized() -> None:
    assert normalize_access_code("  ab12cd ") == "AB12CD"
    event = _book().resolve(" Ab12Cd", now=START + dt.timedelta(minutes=5))
    assert event.event_id == "ev-1"


def test_unknown_code_and_closed_window() -> None:
    book = _book()
    with pytest.raises(EventNotFound):
        book.resolve("zzz", now=START)
    with pytest.raises(EventNotOpen) as early:
        book.resolve("AB12CD", now=START - dt.timedelta(seconds=1))
    assert early.value.reason == "not_started"
    with pytest.raises(EventNotOpen) as late:
        book.resolve("AB12CD", now=END + dt.timedelta(seconds=1))
    assert late.value.reason == "ended"


def test_event_validation() -> None:
    with pytest.raises(ValueError):
        EvaluationEvent("ev", "code", "c", END, START)
    book = _book()
    with pytest.raises(ValueError):
        book.add(EvaluationEvent("ev-2", "AB12CD", "capitals", START, END))


def test_event_session_links_result_to_event() -> None:
    store = MemoryStore(records=[])
    session = start_event_session(
        _book(),
        "ab12cd",
        now=START + dt.timedelta(minutes=1),
        repository=_repo(),
        clock=FakeClock(),
        seed=1,
        results_store=store,
        user_id="u1",
    )
    assert session.status is SessionStatus.ACTIVE
    session.finalize()
    (record,) = store.records
    assert record.evaluation_event_id == "ev-1"
    assert record.user_id == "u1"


def test_book_from_json_file(tmp_path) -> None:
    path = tmp_path / "events.json"
    path.write_text(
        json.dumps(
            [
                {
                    "event_id": "ev-1",
                    "access_code": "ab12cd",
                    "content_id": "capitals",
                    "starts_at": "2026-03-01T09:00:00+00:00",
                    "ends_at": "2026-03-01T10:00:00",
                    "title": "Midterm",
                }
            ]
        ),
        encoding="utf-8",
    )
    book = EvaluationEventBook.from_json(path)
    assert len(book) == 1
    event = book.resolve("AB12CD", now=START + dt.timedelta(minutes=30))
    assert event.ends_at == END
    assert event.title == "Midterm"


def test_book_from_json_rejects_bad_files(tmp_path) -> None:
    path = tmp_path / "events.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        EvaluationEventBook.from_json(path)

    path.write_text(json.dumps([{"event_id": "ev-1", "access_code": "x", "content_id": "c", "starts_at": 5}]), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        EvaluationEventBook.from_json(path)

    event = {"event_id": "ev", "access_code": "x", "content_id": "c", "starts_at": "2026-03-01T09:00", "ends_at": "2026-03-01T10:00"}
    path.write_text(json.dumps([event, dict(event, event_id="ev-2")]), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        EvaluationEventBook.from_json(path)

    with pytest.raises(ConfigurationError):
        EvaluationEventBook.from_json(tmp_path / "missing.json")
