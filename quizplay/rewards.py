from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class RewardNotifier(Protocol):
    """Receives qualifying events; the reward magnitude is decided elsewhere."""

    def item_correct(self, content_id: str) -> None: ...

    def session_completed(self, content_id: str, passed: bool) -> None: ...


class LoggingRewardNotifier:
    """Default notifier for the standalone app: records the events in the log."""

    def item_correct(self, content_id: str) -> None:
        logger.info("reward_event: item_correct content_id=%s", content_id)

    def session_completed(self, content_id: str, passed: bool) -> None:
        logger.info("reward_event: session_completed content_id=%s passed=%s", content_id, passed)
