"""Where config files live on each platform.

Windows reads ``%PROGRAMDATA%`` and ``%APPDATA%``; elsewhere ``/etc`` and the
XDG config home (falling back to ``~/.idebridge``). Projects keep theirs in
``<workspace>/.idebridge/``.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "idebridge"
PROJECT_DIR = ".idebridge"


def _under_env(var: str) -> Path | None:
    base = os.environ.get(var)
    return Path(base) / APP_NAME / CONFIG_FILENAME if base else None


def get_system_config_path() -> Path | None:
    if sys.platform == "win32":
        return _under_env("PROGRAMDATA")
    return Path("/etc", APP_NAME, CONFIG_FILENAME)


def get_user_config_path() -> Path | None:
    if sys.platform == "win32":
        return _under_env("APPDATA")

    path = _under_env("XDG_CONFIG_HOME")
    if path is not None:
        return path
    dot_config = Path.home() / ".config"
    if dot_config.exists():
        return dot_config / APP_NAME / CONFIG_FILENAME
    return Path.home() / PROJECT_DIR / CONFIG_FILENAME


def get_project_config_path(project_root: str) -> Path:
    return Path(project_root, PROJECT_DIR, CONFIG_FILENAME)


def get_config_paths(project_root: str | None = None) -> list[Path]:
    """Candidate config files, lowest priority first."""
    candidates = [get_system_config_path(), get_user_config_path()]
    if project_root:
        candidates.append(get_project_config_path(project_root))
    return [path for path in candidates if path is not None]
