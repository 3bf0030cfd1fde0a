"""IDE server lifecycle: bind, serve, publish discovery info, broadcast, stop."""

from __future__ import annotations

import asyncio
import contextlib
import socket
import uuid

from mcp.types import JSONRPCNotification

from idebridge.config.schema import Config
from idebridge.context.open_files import OpenFilesManager
from idebridge.diff.manager import DiffManager
from idebridge.errors import TransportError
from idebridge.logging import get_logger
from idebridge.server.app import create_app
from idebridge.server.discovery import DiscoveryPublisher, EnvironmentCollection
from idebridge.server.rpc import RpcDispatcher
from idebridge.server.sessions import Session, SessionRegistry
from idebridge.server.tools import create_mcp_server
from idebridge.types import context_update_notification
from idebridge.workspace import TextEditor, Workspace

log = get_logger("server")

HOST = "127.0.0.1"


class IDEServer:
    """Local control plane the assistant process connects to.

    Owns the session registry and wires the context aggregator and the diff
    manager into it: debounced context changes and diff outcomes are
    broadcast to every active session.
    """

    def __init__(
        self,
        diff_manager: DiffManager,
        workspace: Workspace,
        *,
        config: Config | None = None,
        open_files_manager: OpenFilesManager | None = None,
        environment: EnvironmentCollection | None = None,
        active_editor: TextEditor | None = None,
    ) -> None:
        self.config = config or Config()
        self.workspace = workspace
        self.diff_manager = diff_manager
        self.auth_token = str(uuid.uuid4())
        self.port: int | None = None

        context_config = self.config.context
        self.open_files_manager = open_files_manager or OpenFilesManager(
            workspace,
            max_files=context_config.max_files,
            max_selected_text_length=context_config.max_selected_text_length,
            debounce_delay=context_config.debounce_ms / 1000,
            active_editor=active_editor,
        )

        server_config = self.config.server
        self.sessions = SessionRegistry(
            ping_interval=server_config.ping_interval,
            max_missed_pings=server_config.max_missed_pings,
            keepalive_interval=server_config.keepalive_interval,
            max_queued_messages=server_config.max_queued_messages,
        )
        self.mcp_server = create_mcp_server(diff_manager)
        self.dispatcher = RpcDispatcher(self.mcp_server)
        self.discovery = DiscoveryPublisher(
            workspace, environment, directory=self.config.discovery.directory
        )
        self.app = create_app(self)

        self._unsubscribers = [
            self.open_files_manager.on_did_change(self.broadcast_ide_context_update),
            self.diff_manager.on_did_change(self._on_diff_notification),
        ]
        self._server = None
        self._server_task: asyncio.Task[None] | None = None
        self._sync_tasks: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._server_task is not None and not self._server_task.done()

    async def start(self) -> None:
        """Bind a kernel-assigned loopback port, serve, and publish discovery info."""
        if self.running:
            raise RuntimeError(f"IDE server already running on port {self.port}")

        import uvicorn

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((HOST, 0))
        self.port = sock.getsockname()[1]

        config = uvicorn.Config(
            self.app,
            log_config=None,
            log_level="warning",
            access_log=False,
            lifespan="off",
            timeout_graceful_shutdown=self.config.server.shutdown_timeout,
        )
        self._server = uvicorn.Server(config)
        self._server_task = asyncio.create_task(self._server.serve(sockets=[sock]))

        while not self._server.started:
            if self._server_task.done():
                # Surface the startup failure
                await self._server_task
                raise RuntimeError("IDE server exited during startup")
            await asyncio.sleep(0.01)

        log.info("IDE server listening on http://%s:%d", HOST, self.port)
        await self.discovery.publish(self.port, self.auth_token)
        self._unsubscribers.append(self.workspace.on_did_change(self._schedule_sync))

    def send_context_update(self, session: Session) -> bool:
        """Send the current context snapshot to one session."""
        notification = context_update_notification(self.open_files_manager.state)
        try:
            session.send(notification)
        except TransportError as e:
            log.debug("Context update to session %s failed: %s", session.session_id, e)
            return False
        return True

    def broadcast_ide_context_update(self) -> None:
        """Send the current context snapshot to every active session."""
        notification = context_update_notification(self.open_files_manager.state)
        delivered = self.sessions.broadcast(notification)
        log.debug("Broadcast IDE context update to %d/%d sessions", delivered, len(self.sessions))

    def _on_diff_notification(self, notification: JSONRPCNotification) -> None:
        self.sessions.broadcast(notification)

    async def sync_env_vars(self) -> None:
        """Republish discovery info and broadcast the context after workspace changes."""
        if self.port is None or not self.running:
            return
        await self.discovery.publish(self.port, self.auth_token)
        self.broadcast_ide_context_update()

    def _schedule_sync(self) -> None:
        task = asyncio.get_running_loop().create_task(self.sync_env_vars())
        self._sync_tasks.add(task)
        task.add_done_callback(self._sync_tasks.discard)

    async def stop(self) -> None:
        """Close sessions, stop serving, and remove discovery info."""
        # Ending the streams first lets uvicorn shut down without waiting on them
        self.sessions.close_all()

        if self._server is not None and self._server_task is not None:
            self._server.should_exit = True
            try:
                await self._server_task
            except Exception as e:
                log.error("Error shutting down IDE server: %s", e)
            else:
                log.info("IDE server shut down")
        self._server = None
        self._server_task = None

        for task in list(self._sync_tasks):
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.open_files_manager.dispose()

        await self.discovery.clear()
