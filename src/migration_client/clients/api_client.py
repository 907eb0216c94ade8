"""Caller-facing facade over transport, retry and pagination."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any
from urllib.parse import urljoin

import requests
from structlog.stdlib import BoundLogger

from migration_client.config import ClientSettings, load_settings
from migration_client.core.classifier import ErrorClassifier
from migration_client.core.errors import TransportError
from migration_client.core.graphql import GraphQLEnvelope
from migration_client.core.http import Request, RetryingTransport, Transport
from migration_client.core.logging import LogConfig, LogEvents, UnifiedLogger
from migration_client.core.pagination import (
    GraphQLPaginator,
    NextPageResolver,
    RestPaginator,
    link_header_next,
)
from migration_client.core.pagination.graphql import ExtractorLike
from migration_client.core.retry import CancellationToken, RetryPolicy

__all__ = ["MigrationApiClient"]


class MigrationApiClient:
    """REST and GraphQL client with transparent retries and pagination.

    Every method raises :class:`~migration_client.core.errors.ApiError` (or a
    subclass) on failure and
    :class:`~migration_client.core.errors.OperationCancelledError` when the
    supplied cancellation token fires. Relative URLs are resolved against
    ``settings.base_url``.
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        session: requests.Session | None = None,
        logger: BoundLogger | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.settings = settings if settings is not None else load_settings()
        self._logger = logger or UnifiedLogger.get(__name__).bind(component="migration_api_client")
        token = self.settings.token.get_secret_value() if self.settings.token else None
        self._transport = Transport(self.settings.http, token=token, session=session, logger=logger)
        self._retrying = RetryingTransport(
            self._transport,
            classifier=ErrorClassifier(self.settings.classifier),
            retry_policy=RetryPolicy(self.settings.retry, logger=logger, sleep=sleep),
            logger=logger,
        )
        self._rest_pages = RestPaginator(self._retrying, config=self.settings.pagination, logger=logger)
        self._graphql_pages = GraphQLPaginator(
            self._retrying,
            config=self.settings.pagination,
            headers=self.settings.http.graphql_headers,
            logger=logger,
        )

    @classmethod
    def from_config(
        cls,
        config_path: str | Path | None = None,
        *,
        overrides: Mapping[str, Any] | None = None,
        configure_logs: bool = True,
        **kwargs: Any,
    ) -> MigrationApiClient:
        """Build a client from a YAML file, environment and overrides."""

        settings = load_settings(config_path, overrides=overrides)
        if configure_logs:
            UnifiedLogger.configure(LogConfig.from_settings(settings.logging))
        client = cls(settings, **kwargs)
        client._logger.debug(LogEvents.CLIENT_SETTINGS_LOADED, base_url=settings.base_url, config_path=config_path)
        return client

    @property
    def base_url(self) -> str:
        return self.settings.base_url

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> MigrationApiClient:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # REST verbs
    # ------------------------------------------------------------------

    def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        return self._send("GET", url, headers=headers, cancel_token=cancel_token)

    def get_expecting_non_success(
        self,
        url: str,
        expected_status: int,
        *,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        """Return the body when the server answers ``expected_status``.

        Any other status raises :class:`TransportError` carrying the actual
        status, a success status included.
        """

        request = Request("GET", self._resolve_url(url), headers=headers or {})
        response = self._retrying.send(request, expected_status=expected_status, cancel_token=cancel_token)
        return response.body_text

    def post(
        self,
        url: str,
        body: Any = None,
        *,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        return self._send("POST", url, body=body, headers=headers, cancel_token=cancel_token)

    def patch(
        self,
        url: str,
        body: Any = None,
        *,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        return self._send("PATCH", url, body=body, headers=headers, cancel_token=cancel_token)

    def put(
        self,
        url: str,
        body: Any = None,
        *,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        return self._send("PUT", url, body=body, headers=headers, cancel_token=cancel_token)

    def delete(
        self,
        url: str,
        body: Any = None,
        *,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        return self._send("DELETE", url, body=body, headers=headers, cancel_token=cancel_token)

    def resource_exists(self, url: str, *, cancel_token: CancellationToken | None = None) -> bool:
        """``True`` on 200, ``False`` on 404; any other status raises."""

        try:
            self.get_expecting_non_success(url, 404, cancel_token=cancel_token)
        except TransportError as exc:
            if exc.status_code != 200:
                raise
            exists = True
        else:
            exists = False
        self._logger.debug(LogEvents.CLIENT_EXISTS_CHECKED, url=url, exists=exists)
        return exists

    def get_all_pages(
        self,
        url: str,
        *,
        page_size: int | None = None,
        headers: Mapping[str, str] | None = None,
        items_path: Sequence[str] | None = None,
        retry_not_found: bool = False,
        next_page: NextPageResolver = link_header_next,
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[Any]:
        return self._rest_pages.fetch_all(
            self._resolve_url(url),
            page_size=page_size,
            headers=headers,
            items_path=items_path,
            retry_not_found=retry_not_found,
            next_page=next_page,
            cancel_token=cancel_token,
        )

    # ------------------------------------------------------------------
    # GraphQL
    # ------------------------------------------------------------------

    def post_graphql(
        self,
        url: str,
        body: Mapping[str, Any],
        *,
        raise_on_errors: bool = True,
        cancel_token: CancellationToken | None = None,
    ) -> GraphQLEnvelope:
        request = Request(
            "POST",
            self._resolve_url(url),
            body=dict(body),
            headers=self.settings.http.graphql_headers,
        )
        return self._retrying.post_graphql(request, raise_on_errors=raise_on_errors, cancel_token=cancel_token)

    def post_graphql_with_pagination(
        self,
        url: str,
        body: Mapping[str, Any],
        extract_nodes: ExtractorLike,
        extract_page_info: ExtractorLike,
        page_size: int | None = None,
        *,
        after: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[Any]:
        return self._graphql_pages.fetch_all(
            self._resolve_url(url),
            body,
            extract_nodes,
            extract_page_info,
            page_size=page_size,
            after=after,
            cancel_token=cancel_token,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _send(
        self,
        method: str,
        url: str,
        *,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        request = Request(method, self._resolve_url(url), body=body, headers=headers or {})
        return self._retrying.send(request, cancel_token=cancel_token).body_text

    def _resolve_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return urljoin(self.base_url + "/", url.lstrip("/"))
