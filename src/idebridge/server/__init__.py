"""Session & transport layer: the loopback HTTP server the assistant talks to."""

from idebridge.server.app import MCP_PATH, MCP_SESSION_ID_HEADER, create_app
from idebridge.server.discovery import (
    IDE_SERVER_PORT_ENV_VAR,
    IDE_WORKSPACE_PATH_ENV_VAR,
    DiscoveryPublisher,
    EnvironmentCollection,
    ProcessEnvironment,
)
from idebridge.server.server import IDEServer
from idebridge.server.sessions import Session, SessionRegistry
from idebridge.server.transport import SessionTransport

__all__ = [
    "IDEServer",
    "create_app",
    "MCP_PATH",
    "MCP_SESSION_ID_HEADER",
    "Session",
    "SessionRegistry",
    "SessionTransport",
    "DiscoveryPublisher",
    "EnvironmentCollection",
    "ProcessEnvironment",
    "IDE_SERVER_PORT_ENV_VAR",
    "IDE_WORKSPACE_PATH_ENV_VAR",
]
