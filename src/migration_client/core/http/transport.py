"""Single-shot HTTP transport on top of :class:`requests.Session`.

The transport performs exactly one round trip per :meth:`Transport.send`
call. It knows nothing about retries or pagination; those layers wrap it.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import requests
from requests import RequestException, Response
from structlog.stdlib import BoundLogger

from migration_client.config.models import HTTPClientConfig
from migration_client.core.errors import TransportError
from migration_client.core.logging import LogEvents, UnifiedLogger

__all__ = ["MUTATING_METHODS", "RawResponse", "Request", "Transport"]

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
_ELIDED = "<elided>"


@dataclass(frozen=True, slots=True)
class Request:
    """Immutable description of one HTTP call."""

    method: str
    url: str
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", dict(self.headers))

    def with_url(self, url: str) -> Request:
        return replace(self, url=url)

    def with_body(self, body: Any) -> Request:
        return replace(self, body=body)


@dataclass(frozen=True, slots=True)
class RawResponse:
    status_code: int
    body_text: str
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class Transport:
    """Issue single HTTP requests and raise :class:`TransportError` on failures."""

    def __init__(
        self,
        config: HTTPClientConfig | None = None,
        *,
        token: str | None = None,
        session: requests.Session | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self.config = config or HTTPClientConfig()
        self._session = session or requests.Session()
        self._session.headers.update(dict(self.config.headers))
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"
        self._timeout = self._derive_timeout(self.config)
        self._logger = logger or UnifiedLogger.get(__name__).bind(component="http_transport")

    @staticmethod
    def _derive_timeout(config: HTTPClientConfig) -> tuple[float, float]:
        connect = min(config.connect_timeout_sec, config.timeout_sec)
        remaining = max(config.timeout_sec - connect, 0.0)
        read = config.read_timeout_sec
        if remaining > 0:
            read = min(read, remaining)
        return (connect, read)

    def close(self) -> None:
        self._session.close()

    def send(self, request: Request, *, expected_status: int | None = None) -> RawResponse:
        """Send ``request`` once.

        Without ``expected_status`` any non-2xx status raises. With it, the
        response is returned only when its status equals ``expected_status``;
        every other status, 2xx included, raises with the actual status.
        """

        self._logger.info(
            LogEvents.HTTP_REQUEST_STARTED,
            method=request.method,
            url=request.url,
            body=self._loggable_body(request),
        )
        start = time.perf_counter()
        try:
            response = self._session.request(
                request.method,
                request.url,
                headers=dict(request.headers) or None,
                timeout=self._timeout,
                **self._payload_kwargs(request.body),
            )
        except RequestException as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            self._logger.warning(
                LogEvents.HTTP_REQUEST_FAILED,
                method=request.method,
                url=request.url,
                duration_ms=duration_ms,
                error=str(exc),
            )
            raise TransportError(
                f"{request.method} {request.url} failed: {exc}",
                method=request.method,
                url=request.url,
            ) from exc

        duration_ms = (time.perf_counter() - start) * 1000
        raw = self._to_raw(response)
        if self._accepted(raw.status_code, expected_status):
            self._logger.info(
                LogEvents.HTTP_REQUEST_COMPLETED,
                method=request.method,
                url=request.url,
                status_code=raw.status_code,
                duration_ms=duration_ms,
            )
            return raw

        self._logger.warning(
            LogEvents.HTTP_REQUEST_FAILED,
            method=request.method,
            url=request.url,
            status_code=raw.status_code,
            expected_status=expected_status,
            duration_ms=duration_ms,
        )
        raise TransportError(
            self._failure_message(request, raw),
            status_code=raw.status_code,
            method=request.method,
            url=request.url,
            headers=raw.headers,
            body_text=raw.body_text,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _accepted(status_code: int, expected_status: int | None) -> bool:
        if expected_status is not None:
            return status_code == expected_status
        return 200 <= status_code < 300

    @staticmethod
    def _payload_kwargs(body: Any) -> dict[str, Any]:
        if body is None:
            return {}
        if isinstance(body, (str, bytes)):
            return {"data": body}
        return {"json": body}

    def _loggable_body(self, request: Request) -> Any:
        if request.body is None:
            return None
        if request.method in MUTATING_METHODS and not self.config.log_bodies:
            return _ELIDED
        return request.body

    @staticmethod
    def _to_raw(response: Response) -> RawResponse:
        return RawResponse(
            status_code=response.status_code,
            body_text=response.text,
            headers=dict(response.headers),
        )

    @staticmethod
    def _failure_message(request: Request, raw: RawResponse) -> str:
        detail = raw.body_text.strip()
        if len(detail) > 500:
            detail = detail[:500] + "..."
        message = f"{request.method} {request.url} returned HTTP {raw.status_code}"
        return f"{message}: {detail}" if detail else message
