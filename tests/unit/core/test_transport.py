"""Unit tests for the single-shot HTTP transport."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
import requests
import responses

from migration_client.config import HTTPClientConfig
from migration_client.core.errors import TransportError
from migration_client.core.http import RawResponse, Request, Transport
from migration_client.core.logging import LogEvents

URL = "https://api.example.test/orgs/acme"


@pytest.fixture
def transport(logger: MagicMock) -> Transport:
    return Transport(HTTPClientConfig(), token="s3cret", logger=logger)


@pytest.mark.unit
class TestRequest:
    def test_method_is_normalised(self) -> None:
        assert Request("patch", URL).method == "PATCH"

    def test_copies_are_independent(self) -> None:
        original = Request("GET", URL, headers={"X-Test": "1"})

        moved = original.with_url(f"{URL}/repos")
        with_body = original.with_body({"name": "repo"})

        assert original.url == URL
        assert moved.url == f"{URL}/repos"
        assert with_body.body == {"name": "repo"}
        assert original.body is None

    def test_raw_response_header_lookup_is_case_insensitive(self) -> None:
        raw = RawResponse(status_code=200, body_text="", headers={"Link": "<x>; rel=\"next\""})

        assert raw.header("link") == "<x>; rel=\"next\""
        assert raw.header("missing") is None


@pytest.mark.unit
class TestTransportSend:
    @responses.activate
    def test_success_returns_raw_response(self, transport: Transport) -> None:
        responses.add(responses.GET, URL, json={"login": "acme"}, headers={"X-Request-Id": "abc"})

        raw = transport.send(Request("GET", URL))

        assert raw.status_code == 200
        assert json.loads(raw.body_text) == {"login": "acme"}
        assert raw.header("x-request-id") == "abc"

    @responses.activate
    def test_sends_default_and_auth_headers(self, transport: Transport) -> None:
        responses.add(responses.GET, URL, body="{}")

        transport.send(Request("GET", URL, headers={"X-Extra": "yes"}))

        sent = responses.calls[0].request.headers
        assert sent["Authorization"] == "Bearer s3cret"
        assert sent["Accept"] == "application/vnd.github+json"
        assert sent["X-Extra"] == "yes"

    @responses.activate
    def test_mapping_body_is_sent_as_json(self, transport: Transport) -> None:
        responses.add(responses.POST, URL, status=201, body="{}")

        transport.send(Request("POST", URL, body={"name": "repo", "private": True}))

        assert json.loads(responses.calls[0].request.body) == {"name": "repo", "private": True}

    @responses.activate
    def test_non_success_raises_with_details(self, transport: Transport) -> None:
        responses.add(responses.GET, URL, status=422, body="Validation Failed", headers={"X-Trace": "t1"})

        with pytest.raises(TransportError) as excinfo:
            transport.send(Request("GET", URL))

        error = excinfo.value
        assert error.status_code == 422
        assert error.method == "GET"
        assert error.url == URL
        assert error.body_text == "Validation Failed"
        assert error.headers["X-Trace"] == "t1"
        assert "HTTP 422" in error.message
        assert not error.is_network_error

    @responses.activate
    def test_network_failure_has_no_status(self, transport: Transport) -> None:
        responses.add(responses.GET, URL, body=requests.ConnectionError("connection refused"))

        with pytest.raises(TransportError) as excinfo:
            transport.send(Request("GET", URL))

        assert excinfo.value.status_code is None
        assert excinfo.value.is_network_error
        assert "connection refused" in excinfo.value.message


@pytest.mark.unit
class TestExpectedStatus:
    @responses.activate
    def test_expected_failure_status_returns_body(self, transport: Transport) -> None:
        responses.add(responses.GET, URL, status=404, body="Not Found")

        raw = transport.send(Request("GET", URL), expected_status=404)

        assert raw.status_code == 404
        assert raw.body_text == "Not Found"

    @responses.activate
    def test_other_failure_status_raises(self, transport: Transport) -> None:
        responses.add(responses.GET, URL, status=401, body="Bad credentials")

        with pytest.raises(TransportError) as excinfo:
            transport.send(Request("GET", URL), expected_status=404)

        assert excinfo.value.status_code == 401

    @responses.activate
    def test_success_status_raises_when_failure_expected(self, transport: Transport) -> None:
        responses.add(responses.GET, URL, status=200, body="{}")

        with pytest.raises(TransportError) as excinfo:
            transport.send(Request("GET", URL), expected_status=404)

        assert excinfo.value.status_code == 200


@pytest.mark.unit
class TestTransportLogging:
    @responses.activate
    def test_logs_start_and_completion(self, transport: Transport, logger: MagicMock) -> None:
        responses.add(responses.GET, URL, body="{}")

        transport.send(Request("GET", URL))

        info_events = [call.args[0] for call in logger.info.call_args_list]
        assert info_events == [LogEvents.HTTP_REQUEST_STARTED, LogEvents.HTTP_REQUEST_COMPLETED]
        assert logger.info.call_args_list[0].kwargs["url"] == URL

    @responses.activate
    def test_mutating_body_is_elided(self, transport: Transport, logger: MagicMock) -> None:
        responses.add(responses.POST, URL, body="{}")

        transport.send(Request("POST", URL, body={"password": "hunter2"}))

        started = logger.info.call_args_list[0]
        assert started.kwargs["method"] == "POST"
        assert started.kwargs["body"] == "<elided>"

    @responses.activate
    def test_bodies_logged_when_enabled(self, logger: MagicMock) -> None:
        responses.add(responses.POST, URL, body="{}")
        transport = Transport(HTTPClientConfig(log_bodies=True), logger=logger)

        transport.send(Request("POST", URL, body={"name": "repo"}))

        assert logger.info.call_args_list[0].kwargs["body"] == {"name": "repo"}

    @responses.activate
    def test_failure_is_logged_as_warning(self, transport: Transport, logger: MagicMock) -> None:
        responses.add(responses.GET, URL, status=503)

        with pytest.raises(TransportError):
            transport.send(Request("GET", URL))

        assert logger.warning.call_args.args[0] == LogEvents.HTTP_REQUEST_FAILED
        assert logger.warning.call_args.kwargs["status_code"] == 503
