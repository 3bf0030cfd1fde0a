"""Exception types raised inside the bridge.

Access-control and protocol failures map to HTTP responses in the server
layer. Transport failures are logged during broadcasts and, apart from
a missing stream, counted as missed pings.
"""

from __future__ import annotations

from typing import Any

from mcp.types import INTERNAL_ERROR

# JSON-RPC code returned for requests that carry no usable session.
SESSION_ERROR_CODE = -32000


class BridgeError(Exception):
    """Base class for all bridge errors."""


class AccessDenied(BridgeError):
    """Request rejected by origin, host, or token checks."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(reason)
        self.status_code = status_code
        self.reason = reason


class JsonRpcError(BridgeError):
    """Error that is reported back to the caller as a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_payload(self, request_id: str | int | None = None) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return {"jsonrpc": "2.0", "error": error, "id": request_id}


class ProtocolError(JsonRpcError):
    """Missing or unknown session on a non-initialization call."""

    def __init__(self, message: str) -> None:
        super().__init__(SESSION_ERROR_CODE, message)


class InternalError(JsonRpcError):
    """Unexpected failure while handling a request."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(INTERNAL_ERROR, message)


class TransportError(BridgeError):
    """A message could not be delivered on a session transport."""


class TransportClosedError(TransportError):
    """The transport has been closed."""


class StreamUnavailableError(TransportError):
    """The notification stream cannot take the message."""


class NoStreamError(StreamUnavailableError):
    """No notification stream is attached yet."""


class StreamConflictError(TransportError):
    """A notification stream is already attached to the session."""
