"""Exception types raised by the migration client core.

Upper layers (CLI, domain endpoint builders) only ever need to catch
:class:`ApiError` to render a user-facing message, and
:class:`OperationCancelledError` to tell a user abort apart from a failed
call. Transport internals stay behind :class:`TransportError`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from migration_client.core.graphql import GraphQLError

__all__ = [
    "ApiError",
    "ConfigurationError",
    "GraphQLResponseError",
    "OperationCancelledError",
    "TransportError",
    "UNKNOWN_ERROR_MESSAGE",
]

UNKNOWN_ERROR_MESSAGE = "UNKNOWN"


class ApiError(Exception):
    """Single caller-facing failure wrapping a human readable message."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TransportError(ApiError):
    """Raised by the transport for non-success statuses and network failures.

    ``status_code`` is ``None`` when the request never produced an HTTP
    response (DNS failure, refused connection, timeout).
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        method: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        body_text: str | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.method = method
        self.url = url
        self.headers: dict[str, str] = dict(headers or {})
        self.body_text = body_text

    @property
    def is_network_error(self) -> bool:
        return self.status_code is None


class GraphQLResponseError(ApiError):
    """Raised when a GraphQL envelope carries errors that will not go away."""

    def __init__(self, message: str, *, errors: Sequence[GraphQLError] = (), data: Any = None) -> None:
        super().__init__(message, status_code=200)
        self.errors = tuple(errors)
        self.data = data


class OperationCancelledError(Exception):
    """Raised when a cancellation token fires before the operation resolved."""

    def __init__(self, message: str = "operation cancelled", *, attempt: int | None = None) -> None:
        super().__init__(message)
        self.attempt = attempt


class ConfigurationError(ValueError):
    """Raised when client settings cannot be loaded or are inconsistent."""
