"""HTTP transport, retry, and classification configuration models."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, PositiveFloat, PositiveInt, field_validator

StatusCode = Annotated[int, Field(ge=100, le=599)]

DEFAULT_TRANSIENT_GRAPHQL_PATTERNS: tuple[str, ...] = (
    r"(?i)currently unavailable",
    r"(?i)please try again later",
    r"(?i)something went wrong while executing your query",
)


def _ensure_regex(pattern: str) -> None:
    try:
        re.compile(pattern)
    except re.error as exc:
        msg = f"Invalid regular expression {pattern!r}: {exc}"
        raise ValueError(msg) from exc


class RetryConfig(BaseModel):
    """Retry policy shared by every verb of the client."""

    model_config = ConfigDict(extra="forbid")

    max_attempts: PositiveInt = Field(
        default=3,
        description="Total attempts (first call included) for transient HTTP failures.",
    )
    graphql_max_attempts: PositiveInt = Field(
        default=5,
        description="Total attempts for GraphQL responses whose errors match a transient pattern.",
    )
    delay_seconds: NonNegativeFloat = Field(
        default=1.0,
        description="Base delay between attempts. Zero disables waiting (tests).",
    )
    strategy: Literal["constant", "exponential"] = Field(
        default="constant",
        description="Delay schedule: fixed interval or exponential growth from delay_seconds.",
    )
    backoff_max: PositiveFloat = Field(
        default=60.0,
        description="Upper bound in seconds for a single computed delay.",
    )
    rate_limit_max_waits: Annotated[int, Field(ge=0)] = Field(
        default=3,
        description="Rate-limit waits allowed per call before they start consuming attempts.",
    )
    rate_limit_max_wait_seconds: NonNegativeFloat = Field(
        default=300.0,
        description="Cap applied to Retry-After / X-RateLimit-Reset hints.",
    )


class EndpointRule(BaseModel):
    """``(method, url pattern)`` pair used to allow-list flaky endpoints."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    method: str = Field(default="*", description="HTTP verb or '*' for any verb.")
    pattern: str = Field(..., min_length=1, description="Regular expression searched in the absolute URL.")

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.strip().upper() or "*"

    @field_validator("pattern")
    @classmethod
    def _compilable(cls, value: str) -> str:
        _ensure_regex(value)
        return value

    def matches(self, method: str, url: str) -> bool:
        if self.method != "*" and self.method != method.upper():
            return False
        return re.search(self.pattern, url) is not None


class ClassifierConfig(BaseModel):
    """Inputs of the error classifier that are policy rather than code."""

    model_config = ConfigDict(extra="forbid")

    retryable_statuses: tuple[StatusCode, ...] = Field(
        default=(502, 503, 504),
        description="HTTP statuses that are always transient.",
    )
    retryable_bad_requests: tuple[EndpointRule, ...] = Field(
        default=(),
        description="Endpoints where HTTP 400 is known to be transient.",
    )
    transient_graphql_patterns: tuple[str, ...] = Field(
        default=DEFAULT_TRANSIENT_GRAPHQL_PATTERNS,
        description="Regular expressions matched against GraphQL error messages.",
    )

    @field_validator("transient_graphql_patterns")
    @classmethod
    def _compile_patterns(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for pattern in value:
            _ensure_regex(pattern)
        return value


class HTTPClientConfig(BaseModel):
    """Configuration for the underlying ``requests`` transport."""

    model_config = ConfigDict(extra="forbid")

    timeout_sec: PositiveFloat = Field(default=60.0, description="Total request timeout in seconds.")
    connect_timeout_sec: PositiveFloat = Field(default=15.0, description="Connection timeout in seconds.")
    read_timeout_sec: PositiveFloat = Field(default=60.0, description="Socket read timeout in seconds.")
    headers: Mapping[str, str] = Field(
        default_factory=lambda: {
            "User-Agent": "migration-client/0.1",
            "Accept": "application/vnd.github+json",
        },
        description="Default headers sent with each request.",
    )
    graphql_headers: Mapping[str, str] = Field(
        default_factory=dict,
        description="Extra headers sent with GraphQL POSTs only (e.g. GraphQL-Features).",
    )
    log_bodies: bool = Field(
        default=False,
        description="Log request bodies of mutating verbs instead of eliding them.",
    )


class PaginationConfig(BaseModel):
    """Pagination defaults."""

    model_config = ConfigDict(extra="forbid")

    page_size: PositiveInt = Field(default=100, description="Items requested per page.")
    page_size_param: str = Field(default="per_page", description="REST query parameter carrying the page size.")
