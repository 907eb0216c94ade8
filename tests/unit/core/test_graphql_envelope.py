"""Unit tests for GraphQL envelope parsing and request bodies."""

from __future__ import annotations

import json

import pytest

from migration_client.core.errors import ApiError
from migration_client.core.graphql import GraphQLError, build_graphql_body, error_paths, parse_envelope


@pytest.mark.unit
class TestParseEnvelope:
    def test_data_only(self) -> None:
        envelope = parse_envelope(json.dumps({"data": {"viewer": {"login": "octocat"}}}))

        assert envelope.data == {"viewer": {"login": "octocat"}}
        assert envelope.errors == ()
        assert not envelope.has_errors

    def test_errors_with_null_data(self) -> None:
        body = {
            "data": None,
            "errors": [
                {
                    "type": "NOT_FOUND",
                    "message": "Could not resolve to an Organization with the login of 'ghost'.",
                    "path": ["organization"],
                    "locations": [{"line": 1, "column": 9}],
                }
            ],
        }

        envelope = parse_envelope(json.dumps(body))

        assert envelope.data is None
        assert envelope.errors == (
            GraphQLError(
                message="Could not resolve to an Organization with the login of 'ghost'.",
                type="NOT_FOUND",
                path=("organization",),
                locations=({"line": 1, "column": 9},),
            ),
        )
        assert envelope.first_error_message.startswith("Could not resolve")

    def test_partial_data_keeps_both(self) -> None:
        body = {"data": {"a": 1, "b": None}, "errors": [{"message": "b failed", "path": ["b"]}]}

        envelope = parse_envelope(json.dumps(body))

        assert envelope.data == {"a": 1, "b": None}
        assert envelope.has_errors

    def test_first_error_without_message_is_unknown(self) -> None:
        envelope = parse_envelope(json.dumps({"errors": [{"type": "INTERNAL"}, {"message": "second"}]}))

        assert envelope.first_error_message == "UNKNOWN"

    def test_empty_body_is_empty_envelope(self) -> None:
        envelope = parse_envelope("")

        assert envelope.data is None
        assert not envelope.has_errors

    @pytest.mark.parametrize("body", ["<html>502 Bad Gateway</html>", "[1, 2]"])
    def test_non_object_body_raises(self, body: str) -> None:
        with pytest.raises(ApiError):
            parse_envelope(body)


@pytest.mark.unit
class TestRequestBody:
    def test_minimal_body(self) -> None:
        assert build_graphql_body("query { viewer { login } }") == {
            "query": "query { viewer { login } }",
            "variables": {},
        }

    def test_operation_name_is_optional(self) -> None:
        body = build_graphql_body("query Q($id: ID!) { node(id: $id) { id } }", {"id": "X"}, "Q")

        assert body["operationName"] == "Q"
        assert body["variables"] == {"id": "X"}

    def test_error_paths(self) -> None:
        errors = [GraphQLError(message="a", path=("org", "repos", 2)), GraphQLError(message="b")]

        assert error_paths(errors) == ["org.repos.2"]
