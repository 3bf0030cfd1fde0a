"""JSON-RPC dispatch of one session's messages onto the MCP server handlers."""

from __future__ import annotations

from typing import Any

from mcp.server.lowlevel import Server
from mcp.shared.exceptions import McpError
from mcp.shared.version import SUPPORTED_PROTOCOL_VERSIONS
from mcp.types import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    LATEST_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    Implementation,
    InitializeRequest,
    InitializeResult,
)
from pydantic import BaseModel, ValidationError

from idebridge.errors import JsonRpcError
from idebridge.logging import get_logger
from idebridge.server.sessions import Session
from idebridge.types import to_wire

log = get_logger("rpc")


def is_initialize_request(body: Any) -> bool:
    return (
        isinstance(body, dict)
        and body.get("jsonrpc") == "2.0"
        and body.get("method") == "initialize"
        and "id" in body
    )


def is_request(message: dict[str, Any]) -> bool:
    return "method" in message and "id" in message


def _method_of(request_type: type[BaseModel]) -> str:
    return request_type.model_fields["method"].default


class RpcDispatcher:
    """Routes the requests of a session to the MCP server's request handlers.

    ``initialize`` is answered here, since the session table (not an SDK
    session) owns the connection state. Everything else goes to the handler
    the server registered for the request type.
    """

    def __init__(self, mcp_server: Server) -> None:
        self._server = mcp_server
        self._options = mcp_server.create_initialization_options()
        self._request_types: dict[str, type[BaseModel]] = {
            _method_of(request_type): request_type for request_type in mcp_server.request_handlers
        }
        self._request_types[_method_of(InitializeRequest)] = InitializeRequest

    async def dispatch(self, session: Session, message: dict[str, Any]) -> dict[str, Any] | None:
        """Handle one message. Returns the response, or None for notifications."""
        method = message.get("method")
        if not isinstance(method, str):
            if "result" in message or "error" in message:
                # Client responses to server requests; the bridge sends none
                return None
            return JsonRpcError(INVALID_REQUEST, "Invalid Request").to_payload(message.get("id"))

        if not is_request(message):
            log.debug("Notification %s on session %s", method, session.session_id)
            return None

        request_id = message["id"]
        request_type = self._request_types.get(method)
        if request_type is None:
            return JsonRpcError(METHOD_NOT_FOUND, f"Method not found: {method}").to_payload(
                request_id
            )

        raw: dict[str, Any] = {"method": method}
        if "params" in message:
            raw["params"] = message["params"]
        try:
            request = request_type.model_validate(raw)
        except ValidationError as e:
            log.info("Invalid params for %s on session %s", method, session.session_id)
            return JsonRpcError(
                INVALID_PARAMS,
                f"Invalid params for {method}",
                data=e.errors(include_url=False, include_context=False, include_input=False),
            ).to_payload(request_id)

        try:
            if isinstance(request, InitializeRequest):
                result: BaseModel = self._initialize(session, request)
            else:
                result = await self._server.request_handlers[request_type](request)
        except JsonRpcError as e:
            log.info("%s failed on session %s: %s", method, session.session_id, e.message)
            return e.to_payload(request_id)
        except McpError as e:
            log.info("%s failed on session %s: %s", method, session.session_id, e.error.message)
            return {"jsonrpc": "2.0", "id": request_id, "error": to_wire(e.error)}
        return {"jsonrpc": "2.0", "id": request_id, "result": to_wire(result)}

    def _initialize(self, session: Session, request: InitializeRequest) -> InitializeResult:
        if session.initialized:
            raise JsonRpcError(INVALID_REQUEST, "Invalid Request: Server already initialized")

        requested = request.params.protocolVersion
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        log.debug(
            "Session %s initialized by %s %s",
            session.session_id,
            request.params.clientInfo.name,
            request.params.clientInfo.version,
        )
        session.initialized = True

        return InitializeResult(
            protocolVersion=version,
            capabilities=self._options.capabilities,
            serverInfo=Implementation(
                name=self._options.server_name, version=self._options.server_version
            ),
            instructions=self._options.instructions,
        )
