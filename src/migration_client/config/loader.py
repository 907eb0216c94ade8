"""Configuration loading utilities."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping, MutableMapping, Sequence
from importlib.resources import files
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import ValidationError

from migration_client.core.errors import ConfigurationError

from .environment import (
    ENV_PREFIX,
    EnvironmentSettings,
    assign_nested,
    coerce_scalar,
    collect_prefixed_overrides,
    load_environment_settings,
)
from .models import ClientSettings

__all__ = ["DEFAULTS_RESOURCE", "load_default_config", "load_raw_config", "load_settings"]

DEFAULTS_RESOURCE = "defaults/client.yaml"


def load_raw_config(path: Path) -> dict[str, Any]:
    """Load a configuration file with support for ``extends``."""

    return _load_with_extends(path, stack=())


def load_default_config() -> dict[str, Any]:
    """Load the defaults shipped inside the package."""

    resource = files("migration_client.config").joinpath(DEFAULTS_RESOURCE)
    try:
        data = yaml.safe_load(resource.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed packaged defaults {DEFAULTS_RESOURCE}: {exc}") from exc
    return _ensure_mapping(data or {}, Path(DEFAULTS_RESOURCE))


def load_settings(
    config_path: str | Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
    env_prefixes: Sequence[str] = (ENV_PREFIX,),
    environment_settings: EnvironmentSettings | None = None,
    include_defaults: bool = True,
) -> ClientSettings:
    """Load, merge, and validate client settings.

    Layers, lowest precedence first: packaged defaults (unless
    ``include_defaults`` is false), YAML file (with ``extends``),
    ``MIGRATION_CLIENT__SECTION__KEY`` variables, dotted ``overrides``.
    ``GH_PAT`` / ``GITHUB_TOKEN`` and ``GH_API_URL`` only fill ``token`` and
    ``base_url`` when no YAML layer sets them.
    """

    merged: dict[str, Any] = load_default_config() if include_defaults else {}
    if config_path is not None:
        merged = _deep_merge(merged, load_raw_config(_resolve_config_path(config_path)))

    env_settings = environment_settings or load_environment_settings()
    if env_settings.token is not None:
        merged.setdefault("token", env_settings.token.get_secret_value())
    if env_settings.api_url is not None:
        merged.setdefault("base_url", env_settings.api_url)

    env_mapping: Mapping[str, str] = env if env is not None else os.environ
    env_overrides = collect_prefixed_overrides(env_mapping, prefixes=env_prefixes)
    if env_overrides:
        merged = _deep_merge(merged, env_overrides)

    if overrides:
        dotted_tree: dict[str, Any] = {}
        for dotted_key, raw_value in overrides.items():
            assign_nested(dotted_tree, dotted_key.split("."), coerce_scalar(raw_value))
        merged = _deep_merge(merged, dotted_tree)

    try:
        return ClientSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid client settings: {exc}") from exc


def _resolve_config_path(config_path: str | Path) -> Path:
    candidate = Path(config_path).expanduser()
    path = candidate if candidate.is_absolute() else (Path.cwd() / candidate)
    path = path.resolve()
    if not path.exists():
        msg = f"Configuration file not found: {path}"
        raise ConfigurationError(msg)
    return path


def _load_with_extends(path: Path, *, stack: Iterable[Path]) -> dict[str, Any]:
    """Load a YAML file and merge any declared ``extends`` recursively."""

    resolved = path.resolve()
    lineage = list(stack)
    if resolved in lineage:
        cycle = " -> ".join(str(p) for p in (*lineage, resolved))
        msg = f"Circular extends detected: {cycle}"
        raise ConfigurationError(msg)

    data = _ensure_mapping(_load_yaml(resolved), resolved)
    extends = data.pop("extends", ())
    if isinstance(extends, (str, Path)):
        extends = (extends,)

    merged: dict[str, Any] = {}
    for reference in extends or ():
        reference_path = (resolved.parent / Path(reference).expanduser()).resolve()
        if not reference_path.exists():
            msg = f"Referenced configuration file not found: {reference} (resolved from {resolved.parent})"
            raise ConfigurationError(msg)
        merged = _deep_merge(merged, _load_with_extends(reference_path, stack=(*lineage, resolved)))

    return _deep_merge(merged, data)


def _load_yaml(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Malformed YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    return data


def _ensure_mapping(value: Any, path: Path) -> dict[str, Any]:
    """Validate that a YAML payload is a mapping with string keys."""

    if not isinstance(value, MutableMapping):
        msg = f"Configuration file must produce a mapping: {path}"
        raise ConfigurationError(msg)
    invalid_keys = [key for key in value if not isinstance(key, str)]
    if invalid_keys:
        keys = ", ".join(map(str, invalid_keys))
        msg = f"Configuration mapping must use string keys: {path} (invalid keys: {keys})"
        raise ConfigurationError(msg)
    return dict(value)


def _deep_merge(
    base: Mapping[str, Any],
    override: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively merge two mapping-like objects."""

    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], MutableMapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(cast(Mapping[str, Any], merged[key]), cast(Mapping[str, Any], value))
        else:
            merged[key] = value
    return merged
