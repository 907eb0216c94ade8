"""Transport wrapper that routes every call through the retry policy."""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from migration_client.core.classifier import CallContext, Classification, ErrorClassifier, Outcome, Success
from migration_client.core.errors import GraphQLResponseError
from migration_client.core.graphql import GraphQLEnvelope, error_paths, parse_envelope
from migration_client.core.logging import LogEvents, UnifiedLogger
from migration_client.core.retry import CancellationToken, RetryPolicy

from .transport import RawResponse, Request, Transport

__all__ = ["RetryingTransport"]


class RetryingTransport:
    """Compose :class:`Transport`, :class:`ErrorClassifier` and :class:`RetryPolicy`."""

    def __init__(
        self,
        transport: Transport,
        *,
        classifier: ErrorClassifier | None = None,
        retry_policy: RetryPolicy | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self.transport = transport
        self.classifier = classifier or ErrorClassifier()
        self.retry_policy = retry_policy or RetryPolicy()
        self._log = logger or UnifiedLogger.get(__name__).bind(component="retrying_transport")

    def send(
        self,
        request: Request,
        *,
        expected_status: int | None = None,
        not_found_retryable: bool = False,
        max_attempts: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> RawResponse:
        context = CallContext(method=request.method, url=request.url, not_found_retryable=not_found_retryable)

        def attempt() -> Outcome[RawResponse]:
            return self.classifier.evaluate(
                lambda: self.transport.send(request, expected_status=expected_status),
                context,
            )

        return self.retry_policy.execute(
            attempt,
            max_attempts=max_attempts,
            cancel_token=cancel_token,
            description=f"{request.method} {request.url}",
        )

    def post_graphql(
        self,
        request: Request,
        *,
        raise_on_errors: bool = True,
        max_attempts: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> GraphQLEnvelope:
        """POST a GraphQL body and return its envelope.

        Transient GraphQL errors are retried like transport failures. With
        ``raise_on_errors`` a non-transient error raises
        :class:`GraphQLResponseError`; without it the envelope is returned and
        the caller inspects :attr:`GraphQLEnvelope.errors` itself.
        """

        context = CallContext(method=request.method, url=request.url)

        def attempt() -> Outcome[GraphQLEnvelope]:
            outcome = self.classifier.evaluate(lambda: parse_envelope(self.transport.send(request).body_text), context)
            if not isinstance(outcome, Success):
                return outcome
            envelope = outcome.value
            if (
                envelope.has_errors
                and not raise_on_errors
                and self.classifier.classify_envelope(envelope) is Classification.PERMANENT
            ):
                return outcome
            return self.classifier.evaluate_envelope(envelope)

        try:
            return self.retry_policy.execute(
                attempt,
                max_attempts=max_attempts,
                cancel_token=cancel_token,
                description=f"graphql {request.url}",
            )
        except GraphQLResponseError as exc:
            self._log.warning(
                LogEvents.GRAPHQL_RESPONSE_ERRORS,
                url=request.url,
                error_message=exc.message,
                error_count=len(exc.errors),
                paths=error_paths(exc.errors),
            )
            raise
