"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping, Sequence

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import HashBackupConfig

ENV_PREFIX = "HASHBACKUP__"
_ENV_SEPARATOR = "__"


def env_key(path: Sequence[str]) -> str:
    """Return the environment variable naming the setting at ``path``.

    ``("backup", "max_backups")`` becomes ``HASHBACKUP__BACKUP__MAX_BACKUPS``.
    """
    return ENV_PREFIX + _ENV_SEPARATOR.join(part.upper() for part in path)


def env_path(name: str) -> list[str] | None:
    """Return the settings path named by ``name``, or None for unrelated variables."""
    if not name.startswith(ENV_PREFIX):
        return None
    path = [segment.lower() for segment in name[len(ENV_PREFIX) :].split(_ENV_SEPARATOR) if segment]
    return path or None


def render_env_value(value: Any) -> str:
    """Format a setting so ``parse_env_value`` reads it back unchanged.

    Lists such as ``backup.worlds`` use YAML flow style (``[world1, nether]``).
    """
    if isinstance(value, (list, tuple)):
        return yaml.safe_dump(list(value), default_flow_style=True).strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    return "null" if value is None else str(value)


def parse_env_value(raw: str) -> Any:
    """Interpret an environment value as YAML, falling back to the raw string."""
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def collect_env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    """Collect ``HASHBACKUP__`` variables from ``env`` as dotted-key overrides."""
    overrides: Dict[str, Any] = {}
    for name, raw in env.items():
        path = env_path(name)
        if path is not None:
            overrides[".".join(path)] = parse_env_value(raw)
    return overrides


def resolve_with_precedence(
    *,
    defaults: HashBackupConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> HashBackupConfig:
    """Merge configuration sources: defaults < file < environment < CLI."""
    merged = defaults.model_dump(mode="python")
    for name, source in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if source is None:
            continue
        merged = _deep_merge(merged, _normalize_mapping(source, source_name=name))

    try:
        return HashBackupConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: HashBackupConfig) -> Dict[str, str]:
    """Flatten the config into `HASHBACKUP__SECTION__KEY` variable mappings."""
    flat: Dict[str, str] = {}

    def _recurse(prefix: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _recurse(prefix + [str(key)], child)
            return
        flat[env_key(prefix)] = render_env_value(value)

    for top_key, child_value in config.model_dump(mode="python").items():
        _recurse([str(top_key)], child_value)
    return flat


def _normalize_mapping(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in dict(source).items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        _assign(result, key.split("."), value, source_name=source_name)
    return result


def _assign(target: dict[str, Any], path: list[str], value: Any, *, source_name: str) -> None:
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(
                f"{source_name.capitalize()} override for {'.'.join(path)} conflicts with an existing value."
            )
        node = existing
    leaf = path[-1]
    if isinstance(value, MappingABC):
        nested = _normalize_mapping(value, source_name=source_name)
        existing_leaf = node.get(leaf)
        node[leaf] = _deep_merge(existing_leaf if isinstance(existing_leaf, dict) else {}, nested)
    else:
        node[leaf] = value


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        if isinstance(value, MappingABC) and isinstance(merged.get(key), MappingABC):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "env_key",
    "collect_env_overrides",
    "env_path",
    "flatten_for_env",
    "parse_env_value",
    "render_env_value",
    "resolve_with_precedence",
]
