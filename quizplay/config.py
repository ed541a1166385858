from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

CONTENT_DIR_ENV = "QUIZPLAY_CONTENT_DIR"
DB_PATH_ENV = "QUIZPLAY_DB_PATH"
USER_ID_ENV = "QUIZPLAY_USER_ID"
LOG_LEVEL_ENV = "QUIZPLAY_LOG_LEVEL"
EVENTS_PATH_ENV = "QUIZPLAY_EVENTS_PATH"


@dataclass(frozen=True, slots=True)
class EngineConfig:
    pass_threshold: int = 60
    default_lives: int = 3
    time_warning_s: int = 5
    suspicious_after_focus_losses: int = 3
    similarity_threshold: float = 0.80
    hotspot_tolerance_pct: float = 5.0

    def __post_init__(self) -> None:
        if not (0 <= self.pass_threshold <= 100):
            raise ValueError("pass_threshold must be in [0, 100]")
        if self.default_lives <= 0:
            raise ValueError("default_lives must be > 0")
        if self.time_warning_s < 0:
            raise ValueError("time_warning_s must be >= 0")
        if self.suspicious_after_focus_losses <= 0:
            raise ValueError("suspicious_after_focus_losses must be > 0")
        if not (0.0 < self.similarity_threshold <= 1.0):
            raise ValueError("similarity_threshold must be in (0.0, 1.0]")
        if self.hotspot_tolerance_pct <= 0.0:
            raise ValueError("hotspot_tolerance_pct must be > 0")


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Host settings for the pygame app; everything has a usable default."""

    content_dir: Path
    db_path: Path
    user_id: str | None = None
    log_level: str = "INFO"
    events_path: Path | None = None

    @classmethod
    def default_data_dir(cls) -> Path:
        return Path.home() / ".quizplay"

    @classmethod
    def from_env(cls) -> "AppSettings":
        data_dir = cls.default_data_dir()
        content_dir = os.environ.get(CONTENT_DIR_ENV, "").strip()
        db_path = os.environ.get(DB_PATH_ENV, "").strip()
        user_id = os.environ.get(USER_ID_ENV, "").strip() or None
        log_level = os.environ.get(LOG_LEVEL_ENV, "INFO").strip().upper() or "INFO"
        events_path = os.environ.get(EVENTS_PATH_ENV, "").strip()
        return cls(
            content_dir=Path(content_dir) if content_dir else data_dir / "content",
            db_path=Path(db_path) if db_path else data_dir / "results.sqlite3",
            user_id=user_id,
            log_level=log_level,
            events_path=Path(events_path) if events_path else data_dir / "events.json",
        )
