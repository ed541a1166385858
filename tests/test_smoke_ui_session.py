from __future__ import annotations

import json
import os


def _key(pygame, key: int, unicode: str = "") -> None:
    pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": key, "unicode": unicode, "mod": 0}))


def _write_content(directory) -> None:
    directory.mkdir()
    quiz = {
        "id": "capitals",
        "title": "Capitals",
        "experience": "quiz",
        "items": [
            {
                "id": "q1",
                "kind": "multiple_choice",
                "prompt": "Capital of France?",
                "options": [{"id": "a", "text": "Paris", "is_correct": True}, {"id": "b", "text": "Rome"}],
            }
        ],
    }
    (directory / "capitals.json").write_text(json.dumps(quiz), encoding="utf-8")


def test_ui_smoke_open_quiz_answer_and_save(tmp_path) -> None:
    # Headless SDL for CI.
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from quizplay.app import run
    from quizplay.config import AppSettings
    from quizplay.persistence import SqliteResultsStore

    content_dir = tmp_path / "content"
    _write_content(content_dir)
    db_path = tmp_path / "r.sqlite3"

    def inject(frame: int) -> None:
        # Main Menu -> Capitals -> option 1 -> next (completes) -> back to menu
        if frame == 1:
            _key(pygame, pygame.K_RETURN)
        elif frame == 3:
            _key(pygame, pygame.K_1, "1")
        elif frame == 5:
            _key(pygame, pygame.K_RETURN)
        elif frame == 7:
            _key(pygame, pygame.K_RETURN)

    settings = AppSettings(content_dir=content_dir, db_path=db_path, user_id="smoke")
    assert run(max_frames=12, event_injector=inject, settings=settings) == 0

    (row,) = SqliteResultsStore(db_path).list_results(user_id="smoke")
    assert row["content_id"] == "capitals"
    assert row["normalized_score"] == 100
    assert row["passed"] == 1


def test_ui_smoke_access_code_opens_event_session(tmp_path) -> None:
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from quizplay.app import run
    from quizplay.config import AppSettings
    from quizplay.persistence import SqliteResultsStore

    content_dir = tmp_path / "content"
    _write_content(content_dir)
    events_path = tmp_path / "events.json"
    events_path.write_text(
        json.dumps(
            [
                {
                    "event_id": "ev-1",
                    "access_code": "AB12",
                    "content_id": "capitals",
                    "starts_at": "2000-01-01T00:00:00Z",
                    "ends_at": "2100-01-01T00:00:00Z",
                }
            ]
        ),
        encoding="utf-8",
    )
    db_path = tmp_path / "r.sqlite3"

    typed = {4: (pygame.K_a, "a"), 5: (pygame.K_b, "b"), 6: (pygame.K_1, "1"), 7: (pygame.K_2, "2")}

    def inject(frame: int) -> None:
        # Main Menu: Capitals, Enter access code, Quit.
        if frame == 1:
            _key(pygame, pygame.K_DOWN)
        elif frame == 2:
            _key(pygame, pygame.K_RETURN)
        elif frame in typed:
            _key(pygame, *typed[frame])
        elif frame == 8:
            _key(pygame, pygame.K_RETURN)
        elif frame == 10:
            _key(pygame, pygame.K_1, "1")
        elif frame == 12:
            _key(pygame, pygame.K_RETURN)

    settings = AppSettings(content_dir=content_dir, db_path=db_path, user_id="smoke", events_path=events_path)
    assert run(max_frames=16, event_injector=inject, settings=settings) == 0

    (row,) = SqliteResultsStore(db_path).list_results(user_id="smoke")
    assert row["content_id"] == "capitals"
    assert row["evaluation_event_id"] == "ev-1"
    assert row["normalized_score"] == 100
