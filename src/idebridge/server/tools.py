"""MCP server definition: the tools the assistant can call."""

from __future__ import annotations

import json
from typing import Any

from mcp.server.lowlevel import Server
from mcp.types import CallToolResult, LoggingLevel, TextContent, Tool

from idebridge import __version__
from idebridge.diff.manager import DiffManager
from idebridge.logging import get_logger
from idebridge.types import CloseDiffRequest, OpenDiffRequest

log = get_logger("tools")

SERVER_NAME = "idebridge-companion-mcp-server"
OPEN_DIFF_TOOL = "openDiff"
CLOSE_DIFF_TOOL = "closeDiff"

TOOLS = [
    Tool(
        name=OPEN_DIFF_TOOL,
        description=(
            "(IDE Tool) Open a diff view to create or modify a file. "
            "Returns a notification once the diff has been accepted or rejected."
        ),
        inputSchema=OpenDiffRequest.model_json_schema(by_alias=True),
    ),
    Tool(
        name=CLOSE_DIFF_TOOL,
        description="(IDE Tool) Close an open diff view for a specific file.",
        inputSchema=CloseDiffRequest.model_json_schema(by_alias=True),
    ),
]


def create_mcp_server(diff_manager: DiffManager) -> Server:
    """MCP server exposing ``openDiff`` and ``closeDiff`` over ``diff_manager``.

    Arguments are checked against each tool's input schema before the call;
    failures come back as tool results with ``isError`` set.
    """
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
        if name == OPEN_DIFF_TOOL:
            open_request = OpenDiffRequest.model_validate(arguments)
            log.info("Received openDiff request for filePath: %s", open_request.file_path)
            await diff_manager.show_diff(open_request.file_path, open_request.new_content)
            return CallToolResult(content=[])

        if name == CLOSE_DIFF_TOOL:
            close_request = CloseDiffRequest.model_validate(arguments)
            log.info("Received closeDiff request for filePath: %s", close_request.file_path)
            content = await diff_manager.close_diff(
                close_request.file_path, close_request.suppress_notification
            )
            response = {"content": content} if content is not None else {}
            return CallToolResult(content=[TextContent(type="text", text=json.dumps(response))])

        raise ValueError(f"Unknown tool: {name}")

    @server.set_logging_level()
    async def set_logging_level(level: LoggingLevel) -> None:
        # No log notifications are sent to clients, so there is nothing to filter
        log.debug("Client requested log level %s", level)

    return server
