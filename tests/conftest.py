"""Shared pytest fixtures for migration client tests."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest

from migration_client.clients import MigrationApiClient
from migration_client.config import ClientSettings, RetryConfig
from migration_client.core.classifier import ErrorClassifier
from migration_client.core.http import RetryingTransport, Transport
from migration_client.core.retry import RetryPolicy

BASE_URL = "https://api.example.test"
GRAPHQL_URL = f"{BASE_URL}/graphql"

_TOKEN_VARIABLES = ("GH_PAT", "GITHUB_TOKEN", "GH_API_URL", "GITHUB_API_URL")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Hide developer credentials and any ``.env`` file from the settings loader."""

    for name in _TOKEN_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def logger() -> MagicMock:
    """Recording stand-in for a structlog ``BoundLogger``."""

    mock_logger = MagicMock()
    mock_logger.bind.return_value = mock_logger
    return mock_logger


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(
        base_url=BASE_URL,
        token="t0ken",
        retry=RetryConfig(delay_seconds=0),
    )


@pytest.fixture
def retrying(settings: ClientSettings, sleeps: list[float], logger: MagicMock) -> Iterator[RetryingTransport]:
    transport = Transport(settings.http, token="t0ken", logger=logger)
    yield RetryingTransport(
        transport,
        classifier=ErrorClassifier(settings.classifier),
        retry_policy=RetryPolicy(settings.retry, logger=logger, sleep=sleeps.append),
        logger=logger,
    )
    transport.close()


@pytest.fixture
def client(settings: ClientSettings, sleeps: list[float], logger: MagicMock) -> Iterator[MigrationApiClient]:
    with MigrationApiClient(settings, logger=logger, sleep=sleeps.append) as api_client:
        yield api_client
