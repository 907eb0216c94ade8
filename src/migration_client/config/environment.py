"""Environment-driven configuration helpers.

Responsibilities:

- read ``.env`` / process env through :class:`EnvironmentSettings`;
- pick up the API token from ``GH_PAT`` or ``GITHUB_TOKEN``;
- turn ``MIGRATION_CLIENT__SECTION__KEY`` variables into nested overrides.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "ENV_PREFIX",
    "EnvironmentSettings",
    "collect_prefixed_overrides",
    "load_environment_settings",
]

ENV_PREFIX = "MIGRATION_CLIENT__"


class EnvironmentSettings(BaseSettings):
    """Typed view of the environment variables the client understands."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("GH_PAT", "GITHUB_TOKEN"),
    )
    api_url: str | None = Field(default=None, validation_alias=AliasChoices("GH_API_URL", "GITHUB_API_URL"))

    @field_validator("api_url")
    @classmethod
    def _blank_as_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


def load_environment_settings(*, env_file: Path | None = None) -> EnvironmentSettings:
    """Load environment settings, optionally from an explicit ``.env`` file."""

    init_kwargs: dict[str, Any] = {}
    if env_file is not None:
        init_kwargs["_env_file"] = env_file
    return EnvironmentSettings(**init_kwargs)


def collect_prefixed_overrides(
    env: Mapping[str, str],
    *,
    prefixes: Sequence[str] = (ENV_PREFIX,),
) -> dict[str, Any]:
    """Build a nested mapping from ``PREFIX__SECTION__KEY=value`` variables.

    Values are parsed as YAML scalars so ``3`` becomes an int and ``false`` a
    bool, mirroring what the same value would mean in the config file.
    """

    overrides: dict[str, Any] = {}
    for raw_key, raw_value in sorted(env.items()):
        for prefix in prefixes:
            if not raw_key.upper().startswith(prefix):
                continue
            path = [part.lower() for part in raw_key[len(prefix) :].split("__") if part]
            if path:
                assign_nested(overrides, path, coerce_scalar(raw_value))
            break
    return overrides


def assign_nested(target: dict[str, Any], path: Sequence[str], value: Any) -> None:
    cursor = target
    for part in path[:-1]:
        existing = cursor.get(part)
        if not isinstance(existing, dict):
            existing = {}
            cursor[part] = existing
        cursor = existing
    cursor[path[-1]] = value


def coerce_scalar(raw_value: Any) -> Any:
    if not isinstance(raw_value, str):
        return raw_value
    try:
        return yaml.safe_load(raw_value)
    except yaml.YAMLError:
        return raw_value
