"""Cursor pagination for GraphQL connections nested anywhere in a response."""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from structlog.stdlib import BoundLogger

from migration_client.config.models import PaginationConfig
from migration_client.core.errors import ApiError
from migration_client.core.http import Request, RetryingTransport
from migration_client.core.logging import LogEvents, UnifiedLogger
from migration_client.core.retry import CancellationToken

__all__ = [
    "Extractor",
    "GraphQLPaginator",
    "PageCursor",
    "as_extractor",
    "path_extractor",
]

Extractor = Callable[[Mapping[str, Any]], Any]
"""Callable receiving the whole response object (``{"data": ..., "errors": ...}``)."""

ExtractorLike = Extractor | Sequence[str | int]


def path_extractor(*path: str | int) -> Extractor:
    """Build an extractor that walks ``path`` and returns ``None`` when it breaks."""

    def _extract(response: Mapping[str, Any]) -> Any:
        node: Any = response
        for key in path:
            if isinstance(key, int) and isinstance(node, list):
                node = node[key] if -len(node) <= key < len(node) else None
            elif isinstance(node, Mapping):
                node = node.get(key)
            else:
                return None
            if node is None:
                return None
        return node

    return _extract


def as_extractor(source: ExtractorLike) -> Extractor:
    if callable(source):
        return source
    if isinstance(source, str):
        return path_extractor(*source.split("."))
    return path_extractor(*source)


@dataclass(frozen=True, slots=True)
class PageCursor:
    """Position inside one pagination session."""

    end_cursor: str | None = None
    has_next_page: bool = True

    @classmethod
    def from_page_info(cls, page_info: Any) -> PageCursor | None:
        """Read ``{hasNextPage, endCursor}``; ``None`` when the page has no page info."""

        if isinstance(page_info, PageCursor):
            return page_info
        if not isinstance(page_info, Mapping):
            return None
        end_cursor = page_info.get("endCursor")
        return cls(
            end_cursor=str(end_cursor) if end_cursor is not None else None,
            has_next_page=bool(page_info.get("hasNextPage", False)),
        )


class GraphQLPaginator:
    """Yield the nodes of a GraphQL connection across all of its pages."""

    def __init__(
        self,
        transport: RetryingTransport,
        *,
        config: PaginationConfig | None = None,
        headers: Mapping[str, str] | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        self._transport = transport
        self.config = config or PaginationConfig()
        self._headers = dict(headers or {})
        self._log = logger or UnifiedLogger.get(__name__).bind(component="graphql_paginator")

    def fetch_all(
        self,
        url: str,
        body: Mapping[str, Any],
        extract_nodes: ExtractorLike,
        extract_page_info: ExtractorLike,
        *,
        page_size: int | None = None,
        after: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[Any]:
        """Yield nodes page by page.

        ``body`` is the GraphQL request (``query`` plus ``variables``); its
        ``first`` and ``after`` variables are overwritten on every page and the
        caller's mapping is never mutated. The page size stays fixed for the
        whole session. The sequence ends when ``hasNextPage`` is false, when a
        page carries no page info, or when an empty page has no next page.
        """

        size = page_size if page_size is not None else self.config.page_size
        if size <= 0:
            msg = "page_size must be a positive integer"
            raise ValueError(msg)
        nodes_of = as_extractor(extract_nodes)
        page_info_of = as_extractor(extract_page_info)

        cursor = PageCursor(end_cursor=after)
        page = 0
        total = 0
        while cursor.has_next_page:
            page += 1
            page_body = self._page_body(body, size, cursor.end_cursor)
            envelope = self._transport.post_graphql(
                Request("POST", url, body=page_body, headers=self._headers),
                cancel_token=cancel_token,
            )
            response = envelope.raw
            nodes = nodes_of(response) or []
            if not isinstance(nodes, Sequence) or isinstance(nodes, (str, bytes)):
                msg = f"Expected a list of nodes from {url}, received {type(nodes).__name__}"
                raise ApiError(msg)
            total += len(nodes)
            self._log.debug(
                LogEvents.PAGINATION_PAGE_FETCHED,
                url=url,
                page=page,
                items=len(nodes),
                after=cursor.end_cursor,
            )
            yield from nodes

            next_cursor = PageCursor.from_page_info(page_info_of(response))
            if next_cursor is None:
                break
            if next_cursor.has_next_page and (
                next_cursor.end_cursor is None or next_cursor.end_cursor == cursor.end_cursor
            ):
                msg = f"GraphQL cursor did not advance past {cursor.end_cursor!r} on page {page} of {url}"
                raise ApiError(msg)
            cursor = next_cursor

        self._log.info(LogEvents.PAGINATION_FETCH_COMPLETED, url=url, pages=page, items=total)

    @staticmethod
    def _page_body(body: Mapping[str, Any], page_size: int, after: str | None) -> dict[str, Any]:
        page_body = copy.deepcopy(dict(body))
        variables = dict(page_body.get("variables") or {})
        variables["first"] = page_size
        variables["after"] = after
        page_body["variables"] = variables
        return page_body
