"""Layered YAML configuration (system, user, project, environment)."""

from idebridge.config.loader import get_config, load_config, reset_config
from idebridge.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from idebridge.config.schema import (
    Config,
    ContextConfig,
    DiscoveryConfig,
    LoggingConfig,
    ServerConfig,
)

__all__ = [
    "Config",
    "ContextConfig",
    "DiscoveryConfig",
    "LoggingConfig",
    "ServerConfig",
    "get_config",
    "get_config_paths",
    "get_project_config_path",
    "get_system_config_path",
    "get_user_config_path",
    "load_config",
    "reset_config",
]
