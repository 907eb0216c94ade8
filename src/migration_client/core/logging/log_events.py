"""Registry of structured logging event identifiers."""

from __future__ import annotations

from enum import Enum, auto
from typing import Any

__all__ = ["LogEvents"]


class LogEvents(str, Enum):
    """Strongly typed registry of UnifiedLogger events.

    Members declared with ``auto()`` derive a dotted identifier from their
    name: ``HTTP_REQUEST_STARTED`` becomes ``http.request.started``.
    """

    @staticmethod
    def _generate_next_value_(name: str, start: int, count: int, _last_values: list[Any]) -> str:
        parts = name.lower().split("_")
        namespace = parts[0]
        suffix = parts[-1] if len(parts) > 1 else "event"
        action = "_".join(parts[1:-1]) or "event"
        return ".".join((namespace, action, suffix))

    def __str__(self) -> str:
        return str(self.value)

    CLIENT_SETTINGS_LOADED = auto()
    CLIENT_EXISTS_CHECKED = auto()

    HTTP_REQUEST_STARTED = auto()
    HTTP_REQUEST_COMPLETED = auto()
    HTTP_REQUEST_FAILED = auto()

    RETRY_ATTEMPT_FAILED = auto()
    RETRY_ATTEMPTS_EXHAUSTED = auto()
    RETRY_RATE_LIMIT_WAIT = auto()
    RETRY_PERMANENT_FAILURE = auto()

    PAGINATION_PAGE_FETCHED = auto()
    PAGINATION_FETCH_COMPLETED = auto()

    GRAPHQL_RESPONSE_ERRORS = auto()

    OPERATION_CANCELLED = "operation.cancelled"
