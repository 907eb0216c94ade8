"""Typed configuration models."""

from __future__ import annotations

from .http import (
    DEFAULT_TRANSIENT_GRAPHQL_PATTERNS,
    ClassifierConfig,
    EndpointRule,
    HTTPClientConfig,
    PaginationConfig,
    RetryConfig,
    StatusCode,
)
from .logging import LoggingConfig
from .settings import ClientSettings

__all__ = [
    "DEFAULT_TRANSIENT_GRAPHQL_PATTERNS",
    "ClassifierConfig",
    "ClientSettings",
    "EndpointRule",
    "HTTPClientConfig",
    "LoggingConfig",
    "PaginationConfig",
    "RetryConfig",
    "StatusCode",
]
