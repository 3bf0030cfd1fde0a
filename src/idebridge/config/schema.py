"""Configuration schema dataclasses for idebridge.

All fields have defaults so partial configs merge together cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class ServerConfig:
    """Session and transport settings.

    Example config.yaml:
        server:
          ping_interval: 60
          max_missed_pings: 3
    """

    ping_interval: float = 60.0  # Seconds between liveness pings
    max_missed_pings: int = 3  # Consecutive failures before pinging stops
    keepalive_interval: float = 30.0  # Idle seconds before an SSE comment
    max_queued_messages: int = 1000  # Per-session notification buffer
    max_body_bytes: int = 10 * 1024 * 1024
    shutdown_timeout: float = 5.0  # Graceful shutdown wait for open streams


@dataclass
class ContextConfig:
    """Workspace context tracking limits."""

    max_files: int = 10
    max_selected_text_length: int = 16384
    debounce_ms: int = 50


@dataclass
class DiscoveryConfig:
    """Where discovery files are written."""

    directory: str | None = None  # Default: tempfile.gettempdir()


@dataclass
class Config:
    """Root configuration object."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)

    # Unknown top-level sections are preserved here
    extra: dict[str, Any] = field(default_factory=dict)
