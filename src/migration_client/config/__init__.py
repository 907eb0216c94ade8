"""Configuration models and loaders."""

from __future__ import annotations

from .environment import ENV_PREFIX, EnvironmentSettings, collect_prefixed_overrides, load_environment_settings
from .loader import load_default_config, load_raw_config, load_settings
from .models import (
    ClassifierConfig,
    ClientSettings,
    EndpointRule,
    HTTPClientConfig,
    LoggingConfig,
    PaginationConfig,
    RetryConfig,
)

__all__ = [
    "ENV_PREFIX",
    "ClassifierConfig",
    "ClientSettings",
    "EndpointRule",
    "EnvironmentSettings",
    "HTTPClientConfig",
    "LoggingConfig",
    "PaginationConfig",
    "RetryConfig",
    "collect_prefixed_overrides",
    "load_environment_settings",
    "load_default_config",
    "load_raw_config",
    "load_settings",
]
