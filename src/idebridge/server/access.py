"""Request access control: origin, host, and bearer token checks."""

from __future__ import annotations

import secrets
from collections.abc import Callable, Mapping

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from idebridge.errors import AccessDenied
from idebridge.logging import get_logger

log = get_logger("access")

CORS_DENIED = "Request denied by CORS policy."
INVALID_HOST = "Invalid Host header"
UNAUTHORIZED = "Unauthorized"


def check_access(headers: Mapping[str, str], port: int | None, auth_token: str) -> None:
    """Run the three checks in order. Raises AccessDenied on the first failure."""
    # Browsers always send Origin; the assistant CLI never does
    if headers.get("origin"):
        raise AccessDenied(403, CORS_DENIED)

    host = headers.get("host", "")
    if port is None or host not in (f"localhost:{port}", f"127.0.0.1:{port}"):
        raise AccessDenied(403, INVALID_HOST)

    auth_header = headers.get("authorization")
    if not auth_header:
        raise AccessDenied(401, "Missing Authorization header")
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise AccessDenied(401, "Malformed Authorization header")
    if not secrets.compare_digest(parts[1].encode(), auth_token.encode()):
        raise AccessDenied(401, "Invalid auth token")


def denial_response(error: AccessDenied) -> Response:
    if error.status_code == 401:
        return PlainTextResponse(UNAUTHORIZED, status_code=401)
    return JSONResponse({"error": error.reason}, status_code=error.status_code)


def install_access_control(
    app: FastAPI,
    get_port: Callable[[], int | None],
    get_token: Callable[[], str],
) -> None:
    """Reject every request that fails :func:`check_access` before routing."""

    @app.middleware("http")
    async def access_control(request: Request, call_next):  # type: ignore[no-untyped-def]
        try:
            check_access(request.headers, get_port(), get_token())
        except AccessDenied as e:
            log.info("Rejected %s %s: %s", request.method, request.url.path, e.reason)
            return denial_response(e)
        return await call_next(request)
