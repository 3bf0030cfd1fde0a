"""Session table, liveness pings, and broadcast to all sessions."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel

from idebridge.errors import NoStreamError, TransportError
from idebridge.logging import get_logger
from idebridge.server.transport import SessionTransport
from idebridge.types import ping_notification

log = get_logger("session")

PING_INTERVAL = 60.0
MAX_MISSED_PINGS = 3


class Session:
    """A logical client connection identified by a server-issued id."""

    def __init__(self, session_id: str, transport: SessionTransport) -> None:
        self.session_id = session_id
        self.transport = transport
        self.initialized = False
        self.initial_context_sent = False
        self.missed_pings = 0
        self._keepalive_task: asyncio.Task[None] | None = None

    @property
    def pinging(self) -> bool:
        return self._keepalive_task is not None and not self._keepalive_task.done()

    def send(self, message: BaseModel | dict[str, Any]) -> None:
        self.transport.send(message)

    def start_keepalive(self, interval: float, max_missed: int) -> None:
        self._keepalive_task = asyncio.create_task(
            self._keepalive(interval, max_missed), name=f"keepalive-{self.session_id}"
        )

    def stop_keepalive(self) -> None:
        if self._keepalive_task is not None:
            self._keepalive_task.cancel()
            self._keepalive_task = None

    async def _keepalive(self, interval: float, max_missed: int) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                self.transport.send(ping_notification())
            except NoStreamError:
                # Nothing to ping until the client opens its stream
                log.debug("Session %s has no stream, ping skipped", self.session_id)
                continue
            except TransportError as e:
                self.missed_pings += 1
                log.warning(
                    "Failed to send keep-alive ping for session %s. Missed pings: %d. Error: %s",
                    self.session_id,
                    self.missed_pings,
                    e,
                )
                if self.missed_pings >= max_missed:
                    # Stop pinging only; the session is reclaimed when its transport closes
                    log.warning(
                        "Session %s missed %d pings, no longer pinging",
                        self.session_id,
                        self.missed_pings,
                    )
                    return
            else:
                self.missed_pings = 0


class SessionRegistry:
    """All active sessions, keyed by session id."""

    def __init__(
        self,
        *,
        ping_interval: float = PING_INTERVAL,
        max_missed_pings: int = MAX_MISSED_PINGS,
        keepalive_interval: float = 30.0,
        max_queued_messages: int = 1000,
    ) -> None:
        self._ping_interval = ping_interval
        self._max_missed_pings = max_missed_pings
        self._keepalive_interval = keepalive_interval
        self._max_queued_messages = max_queued_messages
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def new_session(self) -> Session:
        """A session with its own transport, not yet registered or pinged."""
        session_id = str(uuid.uuid4())
        transport = SessionTransport(
            session_id,
            keepalive_interval=self._keepalive_interval,
            max_queued_messages=self._max_queued_messages,
        )
        return Session(session_id, transport)

    def register(self, session: Session) -> None:
        """Make a session reachable by id and start its liveness pings."""
        session.transport.on_close(lambda _t: self._on_transport_closed(session))
        self._sessions[session.session_id] = session
        session.start_keepalive(self._ping_interval, self._max_missed_pings)
        log.info("New session initialized: %s", session.session_id)

    def create(self) -> Session:
        session = self.new_session()
        self.register(session)
        return session

    def _on_transport_closed(self, session: Session) -> None:
        session.stop_keepalive()
        session.initial_context_sent = False
        self._sessions.pop(session.session_id, None)
        log.info("Session closed: %s", session.session_id)

    def broadcast(self, message: BaseModel | dict[str, Any]) -> int:
        """Send to every session; one failing session never blocks the rest.

        Returns the number of sessions the message was queued for.
        """
        delivered = 0
        for session in list(self._sessions.values()):
            try:
                session.send(message)
                delivered += 1
            except TransportError as e:
                log.debug("Broadcast to session %s failed: %s", session.session_id, e)
            except Exception:
                log.exception("Broadcast to session %s failed", session.session_id)
        return delivered

    def close_all(self) -> None:
        for session in list(self._sessions.values()):
            session.transport.close()
