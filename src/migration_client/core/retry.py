"""Retry engine driven by classified outcomes."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from typing import Any, TypeVar

import backoff
from structlog.stdlib import BoundLogger

from migration_client.config.models import RetryConfig
from migration_client.core.classifier import Classification, FailureKind, Outcome, Permanent, Retryable, Success
from migration_client.core.errors import OperationCancelledError
from migration_client.core.logging import LogEvents, UnifiedLogger

__all__ = ["CancellationToken", "RetryContext", "RetryPolicy"]

T = TypeVar("T")


class CancellationToken:
    """Thread-safe cancellation flag shared between a caller and a call chain."""

    __slots__ = ("_event", "_reason")

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = "operation cancelled"

    def cancel(self, reason: str | None = None) -> None:
        if reason:
            self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def wait(self, timeout: float) -> bool:
        """Block for up to ``timeout`` seconds; return ``True`` if cancelled meanwhile."""

        return self._event.wait(timeout)

    def raise_if_cancelled(self, *, attempt: int | None = None) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self._reason, attempt=attempt)


@dataclass(slots=True)
class RetryContext:
    """Bookkeeping for one :meth:`RetryPolicy.execute` call."""

    attempt_number: int = 0
    last_classification: Classification | None = None
    elapsed_delay_seconds: float = 0.0
    rate_limit_waits: int = 0
    failures_by_kind: dict[FailureKind, int] = field(default_factory=dict)

    @property
    def counted_attempts(self) -> int:
        """Attempts that count against a ceiling (rate-limit waits excluded)."""

        return self.attempt_number - self.rate_limit_waits

    def record_failure(self, kind: FailureKind) -> int:
        """Count a failed attempt under its budget and return the new count."""

        # Rate limits past their wait budget spend the transport budget.
        budget = FailureKind.TRANSPORT if kind is FailureKind.RATE_LIMIT else kind
        self.failures_by_kind[budget] = self.failures_by_kind.get(budget, 0) + 1
        return self.failures_by_kind[budget]


class RetryPolicy:
    """Execute an operation until it succeeds, fails permanently, or exhausts attempts.

    ``operation`` is a zero-argument callable returning an
    :data:`~migration_client.core.classifier.Outcome`. The policy never
    catches exceptions raised by the operation itself: anything that should
    be retried must come back as :class:`Retryable`.

    Without ``sleep`` the policy waits on the cancellation token when one is
    given (a cancel ends the wait early) and on :func:`time.sleep` otherwise.
    An injected ``sleep`` is used for every wait, token or not, and the
    token is checked once it returns.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        logger: BoundLogger | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.config = config or RetryConfig()
        self._sleep = sleep
        self._logger = logger or UnifiedLogger.get(__name__).bind(component="retry_policy")

    def execute(
        self,
        operation: Callable[[], Outcome[T]],
        *,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        cancel_token: CancellationToken | None = None,
        description: str | None = None,
    ) -> T:
        if max_attempts is not None and max_attempts < 1:
            msg = f"max_attempts must be positive, got {max_attempts}"
            raise ValueError(msg)

        context = RetryContext()
        delays = self._wait_gen(self.config.delay_seconds if base_delay is None else base_delay)
        log = self._logger.bind(operation=description) if description else self._logger

        while True:
            if cancel_token is not None:
                self._check_cancelled(cancel_token, context, log)
            context.attempt_number += 1
            outcome = operation()
            if cancel_token is not None:
                # A response that arrives after cancellation is discarded.
                self._check_cancelled(cancel_token, context, log)

            if isinstance(outcome, Success):
                return outcome.value
            context.last_classification = outcome.classification
            if isinstance(outcome, Permanent):
                log.debug(
                    LogEvents.RETRY_PERMANENT_FAILURE,
                    attempt=context.attempt_number,
                    error=str(outcome.error),
                )
                raise outcome.error

            delay = self._next_delay(outcome, context, delays, max_attempts, log)
            if delay is None:
                raise outcome.error
            self._wait(delay, cancel_token, context, log)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ceiling(self, kind: FailureKind) -> int:
        if kind is FailureKind.PAYLOAD:
            return self.config.graphql_max_attempts
        return self.config.max_attempts

    def _next_delay(
        self,
        outcome: Retryable,
        context: RetryContext,
        delays: Generator[float, Any, None],
        max_attempts: int | None,
        log: BoundLogger,
    ) -> float | None:
        """Return the delay before the next attempt, or ``None`` when exhausted."""

        if outcome.kind is FailureKind.RATE_LIMIT and context.rate_limit_waits < self.config.rate_limit_max_waits:
            context.rate_limit_waits += 1
            hint = outcome.delay_hint if outcome.delay_hint is not None else next(delays)
            delay = min(hint, self.config.rate_limit_max_wait_seconds)
            log.warning(
                LogEvents.RETRY_RATE_LIMIT_WAIT,
                attempt=context.attempt_number,
                wait_seconds=delay,
                rate_limit_waits=context.rate_limit_waits,
                error=str(outcome.error),
            )
            return delay

        failures = context.record_failure(outcome.kind)
        if max_attempts is not None:
            # A per-call ceiling bounds every counted attempt regardless of kind.
            used, ceiling = context.counted_attempts, max_attempts
        else:
            used, ceiling = failures, self._ceiling(outcome.kind)
        if used >= ceiling:
            log.error(
                LogEvents.RETRY_ATTEMPTS_EXHAUSTED,
                attempt=context.attempt_number,
                max_attempts=ceiling,
                kind=outcome.kind.value,
                error=str(outcome.error),
            )
            return None

        delay = next(delays)
        log.warning(
            LogEvents.RETRY_ATTEMPT_FAILED,
            attempt=context.attempt_number,
            max_attempts=ceiling,
            kind=outcome.kind.value,
            delay_seconds=delay,
            error=str(outcome.error),
        )
        return delay

    def _wait(
        self,
        delay: float,
        cancel_token: CancellationToken | None,
        context: RetryContext,
        log: BoundLogger,
    ) -> None:
        context.elapsed_delay_seconds += delay
        if delay <= 0:
            return
        if self._sleep is not None:
            self._sleep(delay)
        elif cancel_token is not None:
            cancel_token.wait(delay)
        else:
            time.sleep(delay)
        if cancel_token is not None:
            self._check_cancelled(cancel_token, context, log)

    def _check_cancelled(self, token: CancellationToken, context: RetryContext, log: BoundLogger) -> None:
        if token.cancelled:
            log.info(LogEvents.OPERATION_CANCELLED, attempt=context.attempt_number, reason=token.reason)
            token.raise_if_cancelled(attempt=context.attempt_number)

    def _wait_gen(self, base_delay: float) -> Generator[float, Any, None]:
        if self.config.strategy == "exponential":
            gen = backoff.expo(factor=base_delay, max_value=self.config.backoff_max)
        else:
            gen = backoff.constant(interval=min(base_delay, self.config.backoff_max))
        # backoff wait generators yield once before producing values.
        gen.send(None)
        return gen
