"""Public client exceptions.

Upper layers (CLI, domain endpoint builders) import failure types from here
only, so they never depend on ``requests`` or on transport internals.
"""

from __future__ import annotations

from migration_client.core.errors import (
    UNKNOWN_ERROR_MESSAGE,
    ApiError,
    ConfigurationError,
    GraphQLResponseError,
    OperationCancelledError,
    TransportError,
)

__all__ = [
    "UNKNOWN_ERROR_MESSAGE",
    "ApiError",
    "ConfigurationError",
    "GraphQLResponseError",
    "OperationCancelledError",
    "TransportError",
]
