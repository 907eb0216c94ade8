"""Lazy REST pagination following ``Link`` headers or page numbers."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from requests.utils import parse_header_links
from structlog.stdlib import BoundLogger

from migration_client.config.models import PaginationConfig
from migration_client.core.errors import ApiError
from migration_client.core.http import RawResponse, Request, RetryingTransport
from migration_client.core.logging import LogEvents, UnifiedLogger
from migration_client.core.retry import CancellationToken

__all__ = [
    "NextPageResolver",
    "PageNumberResolver",
    "RestPaginator",
    "link_header_next",
    "with_query_params",
]

NextPageResolver = Callable[[str, RawResponse, Sequence[Any]], str | None]
"""``(current_url, response, page_items) -> next_url | None``."""


def link_header_next(current_url: str, response: RawResponse, items: Sequence[Any]) -> str | None:
    """Return the ``rel="next"`` target of the response ``Link`` header."""

    header = response.header("Link")
    if not header:
        return None
    for link in parse_header_links(header):
        rels = link.get("rel", "").split()
        if "next" in rels and link.get("url"):
            return link["url"]
    return None


@dataclass(frozen=True, slots=True)
class PageNumberResolver:
    """Page-number convention: bump ``page_param`` until a short or empty page."""

    page_param: str = "page"
    page_size: int | None = None
    start_page: int = 1

    def __call__(self, current_url: str, response: RawResponse, items: Sequence[Any]) -> str | None:
        if not items:
            return None
        if self.page_size is not None and len(items) < self.page_size:
            return None
        query = dict(parse_qsl(urlsplit(current_url).query, keep_blank_values=True))
        try:
            current = int(query.get(self.page_param, self.start_page))
        except ValueError as exc:
            msg = f"Non-numeric {self.page_param!r} in {current_url}"
            raise ApiError(msg) from exc
        return with_query_params(current_url, {self.page_param: current + 1}, replace=True)


def with_query_params(url: str, params: Mapping[str, Any], *, replace: bool = False) -> str:
    """Add ``params`` to ``url``; existing keys are kept unless ``replace``."""

    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    present = {key for key, _ in query}
    if replace:
        query = [(key, value) for key, value in query if key not in params]
        present = set()
    for key, value in params.items():
        if key not in present:
            query.append((key, str(value)))
    return urlunsplit(parts._replace(query=urlencode(query)))


def _extract_items(payload: Any, items_path: Sequence[str] | None, url: str) -> list[Any]:
    node = payload
    for key in items_path or ():
        if not isinstance(node, Mapping):
            node = None
            break
        node = node.get(key)
    if not isinstance(node, list):
        location = ".".join(items_path) if items_path else "response body"
        msg = f"Expected a JSON array at {location} of {url}, received {type(node).__name__}"
        raise ApiError(msg)
    return node


class RestPaginator:
    """Walk a paginated REST collection one page at a time."""

    def __init__(
        self,
        transport: RetryingTransport,
        *,
        config: PaginationConfig | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._transport = transport
        self.config = config or PaginationConfig()
        self._log = logger or UnifiedLogger.get(__name__).bind(component="rest_paginator")

    def fetch_all(
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
        """Yield every element of every page, fetching pages lazily.

        Every call starts again from the first page. A page is retried on its
        own, so a failure on page N never refetches earlier pages.
        ``retry_not_found`` lets the first page treat 404 as transient, for
        collections read right after the parent resource was created.
        """

        size = page_size if page_size is not None else self.config.page_size
        if size <= 0:
            msg = "page_size must be a positive integer"
            raise ValueError(msg)

        request = Request("GET", with_query_params(url, {self.config.page_size_param: size}), headers=headers or {})
        page = 0
        total = 0
        while True:
            page += 1
            response = self._transport.send(
                request,
                not_found_retryable=retry_not_found and page == 1,
                cancel_token=cancel_token,
            )
            items = _extract_items(self._decode(response, request.url), items_path, request.url)
            total += len(items)
            self._log.debug(
                LogEvents.PAGINATION_PAGE_FETCHED,
                url=request.url,
                page=page,
                items=len(items),
            )
            yield from items

            next_url = next_page(request.url, response, items)
            if not next_url:
                break
            request = request.with_url(next_url)

        self._log.info(LogEvents.PAGINATION_FETCH_COMPLETED, url=url, pages=page, items=total)

    @staticmethod
    def _decode(response: RawResponse, url: str) -> Any:
        try:
            return json.loads(response.body_text) if response.body_text else []
        except ValueError as exc:
            raise ApiError(f"Unable to decode JSON page from {url}: {exc}") from exc
