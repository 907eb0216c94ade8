"""Root settings model for :class:`~migration_client.clients.MigrationApiClient`."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from .http import ClassifierConfig, HTTPClientConfig, PaginationConfig, RetryConfig
from .logging import LoggingConfig


class ClientSettings(BaseModel):
    """Everything the client needs besides the calls themselves."""

    model_config = ConfigDict(extra="forbid")

    extends: Sequence[str] = Field(
        default_factory=tuple,
        description="Optional list of YAML files merged before this configuration.",
    )
    base_url: str = Field(default="https://api.github.com", min_length=1)
    token: SecretStr | None = Field(default=None, description="Bearer token sent as Authorization header.")
    http: HTTPClientConfig = Field(default_factory=HTTPClientConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def graphql_url(self) -> str:
        return f"{self.base_url}/graphql"
