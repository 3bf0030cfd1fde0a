"""Per-session notification transport over Server-Sent Events."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from typing import Any

from pydantic import BaseModel

from idebridge.errors import (
    NoStreamError,
    StreamConflictError,
    StreamUnavailableError,
    TransportClosedError,
)
from idebridge.logging import get_logger
from idebridge.types import to_wire

log = get_logger("transport")

# Queue sentinel that ends the stream
_CLOSE = None


def format_sse(message: dict[str, Any]) -> str:
    return f"event: message\ndata: {json.dumps(message)}\n\n"


class SessionTransport:
    """Outbound channel for one session's asynchronous notifications.

    Messages are queued in order and written to the attached SSE stream.
    :meth:`send` fails when the transport is closed, when no stream is
    attached, or when the buffer is full.
    """

    def __init__(
        self,
        session_id: str,
        *,
        keepalive_interval: float = 30.0,
        max_queued_messages: int = 1000,
    ) -> None:
        self.session_id = session_id
        self._keepalive_interval = keepalive_interval
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(
            maxsize=max_queued_messages
        )
        self._stream_attached = False
        self._closed = False
        self._close_listeners: list[Callable[[SessionTransport], None]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def has_stream(self) -> bool:
        return self._stream_attached

    def on_close(self, listener: Callable[[SessionTransport], None]) -> None:
        self._close_listeners.append(listener)

    def send(self, message: BaseModel | dict[str, Any]) -> None:
        """Queue a message for the attached stream."""
        if self._closed:
            raise TransportClosedError(f"Session {self.session_id} is closed")
        if not self._stream_attached:
            raise NoStreamError(f"Session {self.session_id} has no open stream")
        payload = to_wire(message) if isinstance(message, BaseModel) else message
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull as e:
            raise StreamUnavailableError(
                f"Session {self.session_id} notification buffer is full"
            ) from e

    def open_stream(self) -> AsyncIterator[str]:
        """Attach the notification stream. Only one may be attached at a time."""
        if self._closed:
            raise TransportClosedError(f"Session {self.session_id} is closed")
        if self._stream_attached:
            raise StreamConflictError(f"Session {self.session_id} already has an open stream")
        self._stream_attached = True
        return self._event_stream()

    async def _event_stream(self) -> AsyncIterator[str]:
        log.debug("Stream attached for session %s", self.session_id)
        try:
            while True:
                try:
                    message = await asyncio.wait_for(
                        self._queue.get(), timeout=self._keepalive_interval
                    )
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if message is _CLOSE:
                    break
                yield format_sse(message)
        finally:
            self._stream_attached = False
            log.debug("Stream detached for session %s", self.session_id)

    def close(self) -> None:
        """Close the transport, end its stream, and notify close listeners."""
        if self._closed:
            return
        self._closed = True
        # Drop anything undelivered so the sentinel always fits
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSE)

        for listener in list(self._close_listeners):
            try:
                listener(self)
            except Exception:
                log.exception("Close listener failed for session %s", self.session_id)
        self._close_listeners.clear()
