from __future__ import annotations

import logging

from .app import run
from .config import AppSettings
from .logging_setup import configure_logging

logger = logging.getLogger(__name__)


def main() -> int:
    """Entry point for running quizplay from the command line."""
    settings = AppSettings.from_env()
    configure_logging(settings.log_level)
    logger.info("app_starting: content_dir=%s db_path=%s", settings.content_dir, settings.db_path)
    return run(settings=settings)


if __name__ == "__main__":
    raise SystemExit(main())
