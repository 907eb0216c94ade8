"""Client facades exposed to callers."""

from __future__ import annotations

from .api_client import MigrationApiClient
from .client_exceptions import (
    ApiError,
    ConfigurationError,
    GraphQLResponseError,
    OperationCancelledError,
    TransportError,
)

__all__ = [
    "ApiError",
    "ConfigurationError",
    "GraphQLResponseError",
    "MigrationApiClient",
    "OperationCancelledError",
    "TransportError",
]
