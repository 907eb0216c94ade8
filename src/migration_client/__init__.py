"""Resilient REST and GraphQL client layer for repository migration tooling."""

from __future__ import annotations

from migration_client.clients import MigrationApiClient
from migration_client.config import ClientSettings, load_settings
from migration_client.core.errors import ApiError, OperationCancelledError
from migration_client.core.retry import CancellationToken

__all__ = [
    "ApiError",
    "CancellationToken",
    "ClientSettings",
    "MigrationApiClient",
    "OperationCancelledError",
    "load_settings",
]

__version__ = "0.1.0"
