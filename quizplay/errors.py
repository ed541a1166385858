from __future__ import annotations

from enum import StrEnum


class EngineError(Exception):
    """Base class for every error raised by the session engine."""


class ConfigurationError(EngineError, ValueError):
    """Content cannot be played: malformed answer key or invalid settings."""


class ContentEmpty(ConfigurationError):
    """The content resolved to zero items; a session cannot start."""


class ContentNotFound(EngineError, LookupError):
    def __init__(self, content_id: str) -> None:
        super().__init__(f"content not found: {content_id!r}")
        self.content_id = content_id


class RepositoryUnavailable(EngineError, RuntimeError):
    """The content repository could not be reached. The host may retry."""


class PersistenceFailed(EngineError, RuntimeError):
    """The results store rejected a finished session. Logged, never fatal."""


class EventNotFound(EngineError, LookupError):
    def __init__(self, access_code: str) -> None:
        super().__init__(f"no evaluation event for access code {access_code!r}")
        self.access_code = access_code


class EventNotOpen(EngineError, RuntimeError):
    def __init__(self, event_id: str, *, reason: str) -> None:
        super().__init__(f"evaluation event {event_id!r} is not open: {reason}")
        self.event_id = event_id
        self.reason = reason


class IgnoreReason(StrEnum):
    """Why a session operation was a no-op.

    These are informational: the host may show a message, the session state is
    untouched.
    """

    ALREADY_ANSWERED = "already_answered"
    SESSION_CLOSED = "session_closed"
    NOT_STARTED = "not_started"
    ALREADY_STARTED = "already_started"
    ITEM_PENDING = "item_pending"
    ENDPOINT_CONNECTED = "endpoint_connected"
    UNKNOWN_ENDPOINT = "unknown_endpoint"
    EMPTY_RESPONSE = "empty_response"
    EMPTY_CLICK = "empty_click"
    SKIP_UNSUPPORTED = "skip_unsupported"
    UNTIMED = "untimed"
    PAUSED = "paused"
    WRONG_RESPONSE_KIND = "wrong_response_kind"
    INVALID_AMOUNT = "invalid_amount"
