"""Discovery files and environment variables that let the assistant find us.

Two copies of the record are written: one keyed by port, one keyed by the
parent process id (the editor), both readable only by the owning user.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import tempfile
from pathlib import Path
from typing import Protocol

from idebridge.logging import get_logger
from idebridge.types import DiscoveryRecord
from idebridge.workspace import Workspace

log = get_logger("discovery")

IDE_SERVER_PORT_ENV_VAR = "IDEBRIDGE_SERVER_PORT"
IDE_WORKSPACE_PATH_ENV_VAR = "IDEBRIDGE_WORKSPACE_PATH"
FILE_PREFIX = "idebridge-server-"


class EnvironmentCollection(Protocol):
    """Environment inherited by terminals the editor spawns."""

    def replace(self, name: str, value: str) -> None: ...

    def clear(self) -> None: ...


class ProcessEnvironment:
    """EnvironmentCollection backed by ``os.environ`` of this process."""

    def __init__(self) -> None:
        self._names: set[str] = set()

    def replace(self, name: str, value: str) -> None:
        os.environ[name] = value
        self._names.add(name)

    def clear(self) -> None:
        for name in self._names:
            os.environ.pop(name, None)
        self._names.clear()


def _write_private(path: Path, content: str) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        if hasattr(os, "fchmod"):
            # O_CREAT leaves the mode of an existing file alone
            os.fchmod(fd, 0o600)
        f.write(content)


class DiscoveryPublisher:
    """Writes and removes the discovery record for a bound server."""

    def __init__(
        self,
        workspace: Workspace,
        environment: EnvironmentCollection | None = None,
        directory: str | os.PathLike[str] | None = None,
    ) -> None:
        self._workspace = workspace
        self._environment = environment if environment is not None else ProcessEnvironment()
        self._directory = Path(directory) if directory else Path(tempfile.gettempdir())
        self._port_file: Path | None = None
        self._ppid_port_file: Path | None = None

    @property
    def port_file(self) -> Path | None:
        return self._port_file

    @property
    def ppid_port_file(self) -> Path | None:
        return self._ppid_port_file

    async def publish(self, port: int, auth_token: str) -> DiscoveryRecord:
        """Write both files and the environment variables.

        File errors are logged and swallowed; the server keeps running.
        """
        ppid = os.getppid()
        self._port_file = self._directory / f"{FILE_PREFIX}{port}.json"
        self._ppid_port_file = self._directory / f"{FILE_PREFIX}{ppid}.json"

        workspace_path = self._workspace.workspace_path
        self._environment.replace(IDE_SERVER_PORT_ENV_VAR, str(port))
        self._environment.replace(IDE_WORKSPACE_PATH_ENV_VAR, workspace_path)

        record = DiscoveryRecord(
            port=port, workspace_path=workspace_path, ppid=ppid, auth_token=auth_token
        )
        content = record.model_dump_json(by_alias=True)

        log.debug("Writing port file: %s", self._port_file)
        log.debug("Writing ppid port file: %s", self._ppid_port_file)
        try:
            await asyncio.gather(
                asyncio.to_thread(_write_private, self._port_file, content),
                asyncio.to_thread(_write_private, self._ppid_port_file, content),
            )
        except OSError as e:
            log.warning("Failed to write discovery files: %s", e)
        return record

    async def clear(self) -> None:
        """Remove both files and the environment variables."""
        self._environment.clear()
        for path in (self._port_file, self._ppid_port_file):
            if path is None:
                continue
            try:
                with contextlib.suppress(FileNotFoundError):
                    await asyncio.to_thread(path.unlink)
            except OSError as e:
                log.warning("Failed to remove discovery file %s: %s", path, e)
