"""Reads the YAML config cascade into a :class:`Config`.

Files are layered system, user, project, then environment overrides on top.
Only the global (no project root) result is cached.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from idebridge.config.merge import merge_configs
from idebridge.config.paths import get_config_paths
from idebridge.config.schema import (
    Config,
    ContextConfig,
    DiscoveryConfig,
    LoggingConfig,
    ServerConfig,
)

_log = logging.getLogger("idebridge.config")

SECTIONS: dict[str, type] = {
    "logging": LoggingConfig,
    "server": ServerConfig,
    "context": ContextConfig,
    "discovery": DiscoveryConfig,
}

_global_config: Config | None = None


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Mapping stored at ``path``; ``{}`` when absent, unreadable or malformed."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        _log.warning("Cannot read config %s: %s", path, e)
        return {}

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        _log.warning("Ignoring malformed config %s: %s", path, e)
        return {}

    if not isinstance(data, dict):
        return {}
    _log.debug("Read config %s", path)
    return data


def env_overrides() -> dict[str, Any]:
    """Settings taken from the environment; these beat every file."""
    overrides: dict[str, Any] = {}
    if log_file := os.environ.get("IDEBRIDGE_LOG"):
        overrides["logging"] = {"file": log_file}
    return overrides


_NUMBER_TYPES: dict[str, type] = {"int": int, "float": float}


def _number_type(f: dataclasses.Field) -> type | None:
    # Schema annotations are strings such as "float" or "int | None"
    return _NUMBER_TYPES.get(str(f.type).split("|")[0].strip())


def _build_section(name: str, cls: type, raw: Any) -> Any:
    values = raw if isinstance(raw, dict) else {}
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if f.name not in values:
            continue
        value = values[f.name]
        number = _number_type(f)
        if number is None or value is None:
            kwargs[f.name] = value
            continue
        try:
            kwargs[f.name] = number(value)
        except (TypeError, ValueError):
            _log.warning("Ignoring invalid %s.%s: %r", name, f.name, value)
    return cls(**kwargs)


def dict_to_config(data: dict[str, Any]) -> Config:
    """Typed view of a merged config mapping.

    Unknown top-level keys land in ``Config.extra``; unknown keys inside a
    known section are dropped.
    """
    sections = {name: _build_section(name, cls, data.get(name)) for name, cls in SECTIONS.items()}
    extra = {key: value for key, value in data.items() if key not in SECTIONS}
    return Config(**sections, extra=extra)


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Config for ``project_root`` (or the global config when None).

    Lowest to highest priority: system file, user file,
    ``<project_root>/.idebridge/config.yaml``, environment.
    """
    global _global_config

    if project_root is None and _global_config is not None and not reload:
        return _global_config

    layers = [load_yaml_file(path) for path in get_config_paths(project_root)]
    layers.append(env_overrides())
    config = dict_to_config(merge_configs(*layers))

    if project_root is None:
        _global_config = config
    return config


def get_config() -> Config:
    return _global_config if _global_config is not None else load_config()


def reset_config() -> None:
    """Drop the cached global config."""
    global _global_config
    _global_config = None
