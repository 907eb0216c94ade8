"""GraphQL wire shapes: request bodies and the ``{data, errors}`` envelope."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from migration_client.core.errors import UNKNOWN_ERROR_MESSAGE, ApiError

__all__ = [
    "GraphQLEnvelope",
    "GraphQLError",
    "build_graphql_body",
    "error_paths",
    "parse_envelope",
]


@dataclass(frozen=True, slots=True)
class GraphQLError:
    """One entry of the ``errors`` list of a GraphQL response."""

    message: str | None = None
    type: str | None = None
    path: tuple[str | int, ...] = ()
    locations: tuple[Mapping[str, int], ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> GraphQLError:
        if not isinstance(payload, Mapping):
            return cls(message=str(payload) if payload is not None else None)
        message = payload.get("message")
        raw_path = payload.get("path")
        raw_locations = payload.get("locations")
        return cls(
            message=message if isinstance(message, str) else None,
            type=payload.get("type") if isinstance(payload.get("type"), str) else None,
            path=tuple(raw_path) if isinstance(raw_path, list) else (),
            locations=tuple(loc for loc in raw_locations if isinstance(loc, Mapping))
            if isinstance(raw_locations, list)
            else (),
        )


@dataclass(frozen=True, slots=True)
class GraphQLEnvelope:
    """Parsed GraphQL response.

    ``data`` may be ``None`` when ``errors`` is non-empty, and ``errors`` may
    be present next to partial ``data``. Check :attr:`has_errors` before
    trusting ``data``.
    """

    data: Any = None
    errors: tuple[GraphQLError, ...] = ()
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def first_error_message(self) -> str:
        """Message of the first error, or ``"UNKNOWN"`` when it has none."""

        if not self.errors:
            return UNKNOWN_ERROR_MESSAGE
        return self.errors[0].message or UNKNOWN_ERROR_MESSAGE


def parse_envelope(body_text: str) -> GraphQLEnvelope:
    """Parse a GraphQL response body.

    Raises :class:`ApiError` when the body is not a JSON object; that is a
    broken response, not a GraphQL error.
    """

    try:
        payload = json.loads(body_text) if body_text else {}
    except ValueError as exc:
        raise ApiError(f"Unable to decode GraphQL response: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ApiError(f"Expected GraphQL response object, received {type(payload).__name__}")

    raw_errors = payload.get("errors")
    errors: tuple[GraphQLError, ...] = ()
    if isinstance(raw_errors, list):
        errors = tuple(GraphQLError.from_payload(item) for item in raw_errors)
    return GraphQLEnvelope(data=payload.get("data"), errors=errors, raw=payload)


def build_graphql_body(
    query: str,
    variables: Mapping[str, Any] | None = None,
    operation_name: str | None = None,
) -> dict[str, Any]:
    """Build ``{"query", "variables", "operationName"?}``."""

    body: dict[str, Any] = {"query": query, "variables": dict(variables or {})}
    if operation_name:
        body["operationName"] = operation_name
    return body


def error_paths(errors: Sequence[GraphQLError]) -> list[str]:
    return [".".join(str(part) for part in error.path) for error in errors if error.path]
