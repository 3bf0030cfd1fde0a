"""Root pytest configuration for all tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import httpx
import pytest

from idebridge.config import Config, ContextConfig, DiscoveryConfig, ServerConfig
from idebridge.diff import DiffContentProvider, DiffManager, InMemoryDiffRenderer
from idebridge.server import IDEServer
from idebridge.workspace import Workspace

# Configure pytest-asyncio to use auto mode
# This is redundant with pyproject.toml but ensures it's set
pytest_plugins = ("pytest_asyncio",)

TEST_PORT = 43117


class FakeEnvironment:
    """EnvironmentCollection that records variables instead of touching os.environ."""

    def __init__(self) -> None:
        self.variables: dict[str, str] = {}
        self.cleared = 0

    def replace(self, name: str, value: str) -> None:
        self.variables[name] = value

    def clear(self) -> None:
        self.variables.clear()
        self.cleared += 1


@pytest.fixture(scope="session")
def anyio_backend():
    """Set anyio backend to asyncio."""
    return "asyncio"


@pytest.fixture
def workspace(tmp_path) -> Workspace:
    """A trusted workspace with one folder."""
    return Workspace([str(tmp_path)], is_trusted=True)


@pytest.fixture
def content_provider() -> DiffContentProvider:
    return DiffContentProvider()


@pytest.fixture
def renderer(content_provider: DiffContentProvider) -> InMemoryDiffRenderer:
    return InMemoryDiffRenderer(content_provider)


@pytest.fixture
def diff_manager(
    renderer: InMemoryDiffRenderer, content_provider: DiffContentProvider
) -> DiffManager:
    return DiffManager(renderer, content_provider)


@pytest.fixture
def environment() -> FakeEnvironment:
    return FakeEnvironment()


@pytest.fixture
def config(tmp_path) -> Config:
    """Config with fast timers and discovery files under tmp_path."""
    discovery_dir = tmp_path / "discovery"
    discovery_dir.mkdir()
    return Config(
        server=ServerConfig(ping_interval=3600.0, keepalive_interval=3600.0),
        context=ContextConfig(debounce_ms=10),
        discovery=DiscoveryConfig(directory=str(discovery_dir)),
    )


@pytest.fixture
async def ide_server(
    diff_manager: DiffManager,
    workspace: Workspace,
    config: Config,
    environment: FakeEnvironment,
) -> AsyncIterator[IDEServer]:
    """An IDEServer that is not bound; its port is fixed for in-process requests."""
    server = IDEServer(diff_manager, workspace, config=config, environment=environment)
    server.port = TEST_PORT
    yield server
    server.sessions.close_all()
    server.open_files_manager.dispose()


@pytest.fixture
async def client(ide_server: IDEServer) -> AsyncIterator[httpx.AsyncClient]:
    """HTTP client talking to the app in-process with a valid Host header."""
    transport = httpx.ASGITransport(app=ide_server.app)
    async with httpx.AsyncClient(
        transport=transport, base_url=f"http://127.0.0.1:{TEST_PORT}"
    ) as client:
        yield client


@pytest.fixture
def auth_headers(ide_server: IDEServer) -> dict[str, str]:
    return {"Authorization": f"Bearer {ide_server.auth_token}"}


@pytest.fixture
def initialize_body() -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "initialize",
        "params": {
            "protocolVersion": "2025-03-26",
            "capabilities": {},
            "clientInfo": {"name": "test-client", "version": "1.0"},
        },
    }


@pytest.fixture
def initialize(
    client: httpx.AsyncClient,
    auth_headers: dict[str, str],
    initialize_body: dict[str, Any],
) -> Callable[[], Awaitable[str]]:
    """Returns a helper that initializes a new session and returns its id."""

    async def _initialize() -> str:
        response = await client.post("/mcp", json=initialize_body, headers=auth_headers)
        assert response.status_code == 200, response.text
        return response.headers["mcp-session-id"]

    return _initialize
