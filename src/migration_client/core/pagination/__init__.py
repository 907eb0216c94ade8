"""Pagination helpers for REST collections and GraphQL connections."""

from .graphql import Extractor, GraphQLPaginator, PageCursor, as_extractor, path_extractor
from .rest import NextPageResolver, PageNumberResolver, RestPaginator, link_header_next, with_query_params

__all__ = [
    "Extractor",
    "GraphQLPaginator",
    "NextPageResolver",
    "PageCursor",
    "PageNumberResolver",
    "RestPaginator",
    "as_extractor",
    "link_header_next",
    "path_extractor",
    "with_query_params",
]
