"""FastAPI application: the ``/mcp`` request, stream, and termination routes."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from mcp.types import INVALID_REQUEST, PARSE_ERROR

from idebridge import __version__
from idebridge.errors import (
    InternalError,
    JsonRpcError,
    ProtocolError,
    StreamConflictError,
    TransportClosedError,
)
from idebridge.logging import get_logger
from idebridge.server.access import install_access_control
from idebridge.server.rpc import is_initialize_request

if TYPE_CHECKING:
    from idebridge.server.server import IDEServer
    from idebridge.server.sessions import Session

log = get_logger("server.app")

MCP_PATH = "/mcp"
MCP_SESSION_ID_HEADER = "mcp-session-id"
NO_SESSION_MESSAGE = "Bad Request: No valid session ID provided for non-initialize request."


def create_app(server: IDEServer) -> FastAPI:
    """Create the FastAPI application bound to an IDEServer."""
    app = FastAPI(
        title="idebridge",
        description="Editor bridge for a local command-line assistant",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    install_access_control(app, lambda: server.port, lambda: server.auth_token)
    _register_routes(app, server)

    return app


def _register_routes(app: FastAPI, server: IDEServer) -> None:
    """Register the MCP routes."""

    @app.post(MCP_PATH)
    async def handle_post(request: Request) -> Response:
        """Initialize a session or handle a call on an existing one."""
        raw = await _read_body(request, server.config.server.max_body_bytes)
        if raw is None:
            return JSONResponse({"error": "Request body too large"}, status_code=413)
        try:
            body = json.loads(raw)
        except ValueError:
            error = JsonRpcError(PARSE_ERROR, "Parse error: Invalid JSON")
            return JSONResponse(error.to_payload(), status_code=400)

        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        session = server.sessions.get(session_id)
        pending: Session | None = None

        if session is None and not session_id and is_initialize_request(body):
            # Registered only once initialize succeeds
            session = pending = server.sessions.new_session()
        elif session is None:
            log.info(NO_SESSION_MESSAGE)
            return JSONResponse(ProtocolError(NO_SESSION_MESSAGE).to_payload(), status_code=400)

        try:
            response = await _handle_messages(server, session, body)
        except Exception:
            log.exception("Error handling MCP request")
            return JSONResponse(InternalError().to_payload(), status_code=500)

        if pending is not None and pending.initialized:
            server.sessions.register(pending)
        return response

    @app.get(MCP_PATH)
    async def handle_stream(request: Request) -> Response:
        """Open the notification stream of a session."""
        session = server.sessions.get(request.headers.get(MCP_SESSION_ID_HEADER))
        if session is None:
            log.info("Invalid or missing session ID")
            return PlainTextResponse("Invalid or missing session ID", status_code=400)

        try:
            stream = session.transport.open_stream()
        except StreamConflictError:
            return PlainTextResponse(
                "Conflict: Only one SSE stream is allowed per session", status_code=409
            )
        except TransportClosedError:
            return PlainTextResponse("Invalid or missing session ID", status_code=400)

        if not session.initial_context_sent:
            server.send_context_update(session)
            session.initial_context_sent = True

        return StreamingResponse(
            stream,
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                MCP_SESSION_ID_HEADER: session.session_id,
            },
        )

    @app.delete(MCP_PATH)
    async def handle_delete(request: Request) -> Response:
        """Terminate a session by closing its transport."""
        session = server.sessions.get(request.headers.get(MCP_SESSION_ID_HEADER))
        if session is None:
            return PlainTextResponse("Invalid or missing session ID", status_code=400)
        session.transport.close()
        return Response(status_code=200)


async def _handle_messages(server: IDEServer, session: Session, body: Any) -> Response:
    if isinstance(body, list):
        responses = []
        for message in body:
            response = await _dispatch_one(server, session, message)
            if response is not None:
                responses.append(response)
        headers = _session_headers(session)
        if not responses:
            return Response(status_code=202, headers=headers)
        return JSONResponse(responses, headers=headers)

    response = await _dispatch_one(server, session, body)
    headers = _session_headers(session)
    if response is None:
        return Response(status_code=202, headers=headers)
    return JSONResponse(response, headers=headers)


def _session_headers(session: Session) -> dict[str, str]:
    # A failed initialize leaves no session to name
    return {MCP_SESSION_ID_HEADER: session.session_id} if session.initialized else {}


async def _dispatch_one(server: IDEServer, session: Session, message: Any) -> dict[str, Any] | None:
    if not isinstance(message, dict):
        return JsonRpcError(INVALID_REQUEST, "Invalid Request").to_payload()
    return await server.dispatcher.dispatch(session, message)


async def _read_body(request: Request, limit: int) -> bytes | None:
    """The request body, or None once it exceeds ``limit`` bytes."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        return None

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            return None
    return bytes(body)
