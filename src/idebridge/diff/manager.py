"""State and lifecycle of diff views proposed by the assistant.

A diff view is opened on request, then ends in exactly one of three ways:
the user accepts it, the user cancels it, or the assistant closes it by
path. Each ending goes through the same teardown and (optionally) emits a
JSON-RPC notification to the registered listeners. Accepting never writes
the file; applying the change is the assistant's job.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from mcp.types import JSONRPCNotification

from idebridge.diff.content import DiffContentProvider
from idebridge.diff.renderer import DiffRenderer
from idebridge.logging import get_logger
from idebridge.types import (
    DIFF_ACCEPTED_METHOD,
    DIFF_CLOSED_METHOD,
    DiffNotificationParams,
    build_notification,
)
from idebridge.workspace import UNTITLED_SCHEME, Uri

log = get_logger("diff")

DIFF_SCHEME = "idebridge-diff"

DiffListener = Callable[[JSONRPCNotification], None]


@dataclass(frozen=True)
class DiffInfo:
    """A registered diff view."""

    original_file_path: str
    new_content: str
    right_doc_uri: Uri

    @property
    def document_id(self) -> str:
        return str(self.right_doc_uri)


def new_diff_uri(file_path: str) -> Uri:
    """Fresh document URI for a proposal; the random query defeats caching."""
    return Uri(scheme=DIFF_SCHEME, path=file_path, query=f"rand={uuid.uuid4().hex}")


class DiffManager:
    """Owns the table of open diff views and reports their outcomes."""

    def __init__(self, renderer: DiffRenderer, content_provider: DiffContentProvider) -> None:
        self._renderer = renderer
        self._content_provider = content_provider
        self._diff_documents: dict[str, DiffInfo] = {}
        self._listeners: list[DiffListener] = []

    def on_did_change(self, listener: DiffListener) -> Callable[[], None]:
        """Register an outcome listener. Returns an unregister function."""
        self._listeners.append(listener)

        def unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unregister

    @property
    def open_diffs(self) -> list[DiffInfo]:
        return list(self._diff_documents.values())

    def get(self, document_id: Uri | str) -> DiffInfo | None:
        return self._diff_documents.get(str(document_id))

    async def show_diff(self, file_path: str, new_content: str) -> Uri:
        """Register a new diff view and ask the renderer to display it.

        Calling twice for the same path creates two independent views.
        Returns the document URI that identifies the view.
        """
        right_doc_uri = new_diff_uri(file_path)
        self._content_provider.set_content(right_doc_uri, new_content)
        self._diff_documents[str(right_doc_uri)] = DiffInfo(
            original_file_path=file_path,
            new_content=new_content,
            right_doc_uri=right_doc_uri,
        )

        await self._renderer.set_diff_visible(True)

        if await asyncio.to_thread(os.path.exists, file_path):
            left_doc_uri = Uri.file(file_path)
        else:
            left_doc_uri = Uri(scheme=UNTITLED_SCHEME, path=file_path)

        title = f"{os.path.basename(file_path)} ↔ Modified"
        await self._renderer.show_diff(left_doc_uri, right_doc_uri, title)
        log.info("Opened diff for %s", file_path)
        return right_doc_uri

    async def close_diff(self, file_path: str, suppress_notification: bool = False) -> str | None:
        """Close the first open diff for ``file_path`` and return its final content."""
        target: DiffInfo | None = None
        for info in self._diff_documents.values():
            if info.original_file_path == file_path:
                target = info
                break

        if target is None:
            log.debug("closeDiff: no open diff for %s", file_path)
            return None

        modified_content = await self._renderer.read_document(target.right_doc_uri)
        await self._close_diff_editor(target.right_doc_uri)
        if not suppress_notification:
            self._emit(DIFF_CLOSED_METHOD, file_path, modified_content)
        return modified_content

    async def accept_diff(self, document_id: Uri | str) -> None:
        """The user accepted the proposed side. Reports it, does not apply it."""
        right_doc_uri = self._as_uri(document_id)
        if right_doc_uri is None:
            return
        info = self._diff_documents.get(str(right_doc_uri))
        if info is None:
            log.debug("acceptDiff: unknown diff %s", right_doc_uri)
            return

        modified_content = await self._renderer.read_document(right_doc_uri)
        if str(right_doc_uri) not in self._diff_documents:
            # Torn down by another action while reading
            return
        await self._close_diff_editor(right_doc_uri)
        self._emit(DIFF_ACCEPTED_METHOD, info.original_file_path, modified_content)

    async def cancel_diff(self, document_id: Uri | str) -> None:
        """The user rejected the proposal or closed its view."""
        right_doc_uri = self._as_uri(document_id)
        if right_doc_uri is None:
            return
        info = self._diff_documents.get(str(right_doc_uri))
        if info is None:
            log.debug("cancelDiff: unknown diff %s", right_doc_uri)
            await self._close_diff_editor(right_doc_uri)
            return

        modified_content = await self._renderer.read_document(right_doc_uri)
        if str(right_doc_uri) not in self._diff_documents:
            return
        await self._close_diff_editor(right_doc_uri)
        self._emit(DIFF_CLOSED_METHOD, info.original_file_path, modified_content)

    async def on_active_editor_change(self, uri: Uri | None) -> None:
        """Keep the editor's "diff visible" flag in sync with the focused document."""
        is_visible = False
        if uri is not None:
            is_visible = str(uri) in self._diff_documents
            if not is_visible:
                is_visible = any(
                    info.original_file_path == uri.fs_path
                    for info in self._diff_documents.values()
                )
        await self._renderer.set_diff_visible(is_visible)

    async def _close_diff_editor(self, right_doc_uri: Uri) -> None:
        """Teardown shared by accept, cancel, and close-by-path.

        Record and cache are released synchronously so no caller can observe
        one without the other; the UI surface is closed afterwards.
        """
        if self._diff_documents.pop(str(right_doc_uri), None) is not None:
            self._content_provider.delete_content(right_doc_uri)
        await self._renderer.set_diff_visible(False)
        await self._renderer.close_diff_view(right_doc_uri)

    def _emit(self, method: str, file_path: str, content: str) -> None:
        notification = build_notification(
            method, DiffNotificationParams(file_path=file_path, content=content)
        )
        log.info("%s for %s", method, file_path)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                log.exception("Diff listener failed for %s", method)

    @staticmethod
    def _as_uri(document_id: Uri | str) -> Uri | None:
        if isinstance(document_id, Uri):
            return document_id
        try:
            return Uri.parse(document_id)
        except ValueError:
            log.debug("Ignoring malformed diff id %r", document_id)
            return None
