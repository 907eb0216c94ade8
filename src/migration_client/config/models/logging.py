"""Logging configuration models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LoggingConfig(BaseModel):
    """Structured logging configuration."""

    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="INFO", description="Log level for UnifiedLogger.")
    format: str = Field(
        default="json",
        description="Log format (json, key_value).",
    )
    redact_fields: tuple[str, ...] = Field(
        default_factory=lambda: ("token", "authorization", "password"),
        description="Event keys whose values are replaced before rendering.",
    )
