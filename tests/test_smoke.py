"""Smoke tests for the pygame UI.

These tests verify that the application's main loop can initialise and
execute a handful of frames without crashing when the SDL dummy video
driver is used, with and without content on disk.
"""

from __future__ import annotations

import os

# Use the dummy drivers before importing pygame or the application
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")


def test_app_runs_headless_without_content(tmp_path) -> None:
    from quizplay.app import run
    from quizplay.config import AppSettings

    settings = AppSettings(content_dir=tmp_path / "content", db_path=tmp_path / "r.sqlite3")
    assert run(max_frames=3, settings=settings) == 0
