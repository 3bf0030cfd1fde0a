"""Wire types exchanged with the assistant process.

Payloads are pydantic models serialised with camelCase aliases. The JSON-RPC
envelope comes from ``mcp.types`` so notifications look exactly like the ones
any MCP client already understands.
"""

from __future__ import annotations

from typing import Any

from mcp.types import JSONRPCNotification
from pydantic import BaseModel, ConfigDict, Field

# Notification method names
CONTEXT_UPDATE_METHOD = "ide/contextUpdate"
DIFF_ACCEPTED_METHOD = "ide/diffAccepted"
DIFF_CLOSED_METHOD = "ide/diffClosed"
PING_METHOD = "ping"


class IdeModel(BaseModel):
    """Base model for bridge payloads with populate_by_name enabled."""

    model_config = ConfigDict(populate_by_name=True)


class SnapshotModel(IdeModel):
    """Immutable payload handed out to readers."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Cursor(SnapshotModel):
    """Cursor position: 1-based line, 0-based character."""

    line: int
    character: int


class File(SnapshotModel):
    """A recently active file as reported to the assistant."""

    path: str
    timestamp: int
    is_active: bool = Field(default=False, alias="isActive")
    cursor: Cursor | None = None
    selected_text: str | None = Field(default=None, alias="selectedText")


class WorkspaceState(SnapshotModel):
    """Open files plus the workspace trust flag."""

    open_files: tuple[File, ...] = Field(default=(), alias="openFiles")
    is_trusted: bool | None = Field(default=None, alias="isTrusted")


class IdeContext(SnapshotModel):
    """Snapshot of the editor context sent in ``ide/contextUpdate``."""

    workspace_state: WorkspaceState | None = Field(default=None, alias="workspaceState")


class OpenDiffRequest(IdeModel):
    """Arguments of the ``openDiff`` tool."""

    file_path: str = Field(alias="filePath", description="Absolute path of the file to change.")
    new_content: str = Field(alias="newContent", description="Proposed full content of the file.")


class CloseDiffRequest(IdeModel):
    """Arguments of the ``closeDiff`` tool."""

    file_path: str = Field(alias="filePath", description="Absolute path of the file.")
    suppress_notification: bool = Field(
        default=False,
        alias="suppressNotification",
        description="Skip the ide/diffClosed notification.",
    )


class DiffNotificationParams(IdeModel):
    """Params of ``ide/diffAccepted`` and ``ide/diffClosed``."""

    file_path: str = Field(alias="filePath")
    content: str


class DiscoveryRecord(IdeModel):
    """Contents of the discovery file read by the assistant process."""

    port: int
    workspace_path: str = Field(alias="workspacePath")
    ppid: int
    auth_token: str = Field(alias="authToken")


def build_notification(method: str, params: BaseModel | None = None) -> JSONRPCNotification:
    """Wrap a payload into a JSON-RPC notification."""
    return JSONRPCNotification(
        jsonrpc="2.0",
        method=method,
        params=params.model_dump(by_alias=True, mode="json", exclude_none=True) if params else None,
    )


def context_update_notification(context: IdeContext) -> JSONRPCNotification:
    return build_notification(CONTEXT_UPDATE_METHOD, context)


def ping_notification() -> JSONRPCNotification:
    return build_notification(PING_METHOD)


def to_wire(message: BaseModel) -> dict[str, Any]:
    """Serialise a model the way it goes over the wire."""
    return message.model_dump(by_alias=True, mode="json", exclude_none=True)
