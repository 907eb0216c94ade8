"""Structured logging primitives for the migration client."""

from .log_events import LogEvents
from .logger import (
    DEFAULT_LOG_LEVEL,
    REDACTED,
    LogConfig,
    LogFormat,
    UnifiedLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "DEFAULT_LOG_LEVEL",
    "REDACTED",
    "LogConfig",
    "LogEvents",
    "LogFormat",
    "UnifiedLogger",
    "configure_logging",
    "get_logger",
]
