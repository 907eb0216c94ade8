"""Failure classification for REST, GraphQL and paginated calls.

The retry engine never inspects exception types. Each attempt is turned into
an :data:`Outcome` by :class:`ErrorClassifier`, and :class:`RetryPolicy`
only reacts to that tagged value. An HTTP 200 carrying GraphQL ``errors`` and
a 503 therefore follow the same retry path.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Generic, TypeVar, Union

from migration_client.config.models import ClassifierConfig
from migration_client.core.errors import ApiError, GraphQLResponseError, TransportError
from migration_client.core.graphql import GraphQLEnvelope

__all__ = [
    "CallContext",
    "Classification",
    "ErrorClassifier",
    "FailureKind",
    "Outcome",
    "Permanent",
    "Retryable",
    "Success",
]

T = TypeVar("T")

_RATE_LIMIT_STATUSES = frozenset({403, 429})


class Classification(str, Enum):
    PERMANENT = "permanent"
    RETRYABLE = "retryable"
    RETRYABLE_WITH_RESET = "retryable_with_reset"


class FailureKind(str, Enum):
    """Which attempt ceiling a retryable failure counts against."""

    TRANSPORT = "transport"
    PAYLOAD = "payload"
    RATE_LIMIT = "rate_limit"


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Retryable:
    error: Exception
    kind: FailureKind = FailureKind.TRANSPORT
    delay_hint: float | None = None

    @property
    def classification(self) -> Classification:
        if self.kind is FailureKind.RATE_LIMIT:
            return Classification.RETRYABLE_WITH_RESET
        return Classification.RETRYABLE


@dataclass(frozen=True, slots=True)
class Permanent:
    error: Exception

    @property
    def classification(self) -> Classification:
        return Classification.PERMANENT


Outcome = Union[Success[T], Retryable, Permanent]


@dataclass(frozen=True, slots=True)
class CallContext:
    """What the classifier needs to know about the call that failed."""

    method: str = "GET"
    url: str = ""
    not_found_retryable: bool = False


class ErrorClassifier:
    """Map failures to :class:`Classification` values.

    Rules are evaluated in order and the first match wins:

    1. 404 is permanent unless the caller declared not-found transient.
    2. Configured transient statuses (502/503/504) and network failures
       without a status are retryable.
    3. Rate-limited responses (429, or 403 with an exhausted quota or a
       ``Retry-After``) are retryable after the advertised reset.
    4. 400 is retryable only for allow-listed ``(method, url)`` rules.
    5. GraphQL envelopes are retryable when an error message matches a
       transient pattern, permanent otherwise.
    6. Everything else is permanent.
    """

    def __init__(
        self,
        config: ClassifierConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or ClassifierConfig()
        self._retryable_statuses = frozenset(self.config.retryable_statuses)
        self._transient_patterns = tuple(re.compile(pattern) for pattern in self.config.transient_graphql_patterns)
        self._clock = clock

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(
        self,
        failure: BaseException | GraphQLEnvelope,
        context: CallContext | None = None,
    ) -> Classification:
        if isinstance(failure, GraphQLEnvelope):
            return self.classify_envelope(failure)
        if isinstance(failure, TransportError):
            return self.classify_transport_error(failure, context or CallContext())
        return Classification.PERMANENT

    def classify_transport_error(self, error: TransportError, context: CallContext) -> Classification:
        status = error.status_code
        if status == 404:
            return Classification.RETRYABLE if context.not_found_retryable else Classification.PERMANENT
        if status is None or status in self._retryable_statuses:
            return Classification.RETRYABLE
        if self._is_rate_limited(error):
            return Classification.RETRYABLE_WITH_RESET
        if status == 400 and self._is_flaky_endpoint(context):
            return Classification.RETRYABLE
        return Classification.PERMANENT

    def classify_envelope(self, envelope: GraphQLEnvelope) -> Classification:
        """Classify an envelope that carries at least one error."""

        if any(self.is_transient_message(error.message) for error in envelope.errors):
            return Classification.RETRYABLE
        return Classification.PERMANENT

    def is_transient_message(self, message: str | None) -> bool:
        if not message:
            return False
        return any(pattern.search(message) for pattern in self._transient_patterns)

    def rate_limit_delay(self, error: TransportError) -> float | None:
        """Seconds until the server-advertised reset, if it advertised one."""

        retry_after = _parse_retry_after(_header(error.headers, "Retry-After"), now=self._clock())
        if retry_after is not None:
            return retry_after
        reset = _header(error.headers, "X-RateLimit-Reset")
        if reset and reset.strip().isdigit():
            return max(float(reset) - self._clock(), 0.0)
        return None

    # ------------------------------------------------------------------
    # Outcome helpers
    # ------------------------------------------------------------------

    def evaluate(self, call: Callable[[], T], context: CallContext) -> Outcome[T]:
        """Run ``call`` once and wrap its result or failure in an outcome."""

        try:
            value = call()
        except TransportError as exc:
            return self.outcome_for(exc, context)
        except ApiError as exc:
            return Permanent(exc)
        return Success(value)

    def outcome_for(self, error: TransportError, context: CallContext) -> Retryable | Permanent:
        classification = self.classify_transport_error(error, context)
        if classification is Classification.PERMANENT:
            return Permanent(error)
        if classification is Classification.RETRYABLE_WITH_RESET:
            return Retryable(error, kind=FailureKind.RATE_LIMIT, delay_hint=self.rate_limit_delay(error))
        return Retryable(error, kind=FailureKind.TRANSPORT)

    def evaluate_envelope(self, envelope: GraphQLEnvelope) -> Outcome[GraphQLEnvelope]:
        if not envelope.has_errors:
            return Success(envelope)
        error = GraphQLResponseError(envelope.first_error_message, errors=envelope.errors, data=envelope.data)
        if self.classify_envelope(envelope) is Classification.RETRYABLE:
            return Retryable(error, kind=FailureKind.PAYLOAD)
        return Permanent(error)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _is_rate_limited(self, error: TransportError) -> bool:
        if error.status_code not in _RATE_LIMIT_STATUSES:
            return False
        if error.status_code == 429:
            return True
        remaining = _header(error.headers, "X-RateLimit-Remaining")
        return remaining == "0" or _header(error.headers, "Retry-After") is not None

    def _is_flaky_endpoint(self, context: CallContext) -> bool:
        return any(rule.matches(context.method, context.url) for rule in self.config.retryable_bad_requests)


def _header(headers: Mapping[str, str], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def _parse_retry_after(value: str | None, *, now: float) -> float | None:
    if not value:
        return None
    value = value.strip()
    if not value:
        return None
    if value.isdigit():
        return float(value)
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    delta = parsed.timestamp() - now
    return max(delta, 0.0)
