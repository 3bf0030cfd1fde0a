"""Tracks recently active files, cursor position, and selected text.

The host editor forwards its events (active editor changed, selection
changed, document closed, files deleted or renamed) to
:class:`OpenFilesManager`. Each handled event reschedules a short debounce;
when it elapses, "changed" listeners fire once for the whole burst and read
the current :attr:`OpenFilesManager.state`.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from idebridge.context.debounce import Debouncer
from idebridge.logging import get_logger
from idebridge.types import Cursor, File, IdeContext, WorkspaceState
from idebridge.workspace import TextEditor, Uri, Workspace

log = get_logger("context")

MAX_FILES = 10
MAX_SELECTED_TEXT_LENGTH = 16384
TRUNCATION_MARKER = "... [TRUNCATED]"
DEBOUNCE_DELAY = 0.05


@dataclass
class TrackedFile:
    """Mutable tracking record; snapshots are taken with :meth:`to_file`."""

    path: str
    timestamp: int
    is_active: bool = False
    cursor: Cursor | None = None
    selected_text: str | None = None

    def deactivate(self) -> None:
        self.is_active = False
        self.cursor = None
        self.selected_text = None

    def to_file(self) -> File:
        return File(
            path=self.path,
            timestamp=self.timestamp,
            is_active=self.is_active,
            cursor=self.cursor,
            selected_text=self.selected_text,
        )


def truncate_selection(text: str, limit: int = MAX_SELECTED_TEXT_LENGTH) -> str:
    if len(text) > limit:
        return text[:limit] + TRUNCATION_MARKER
    return text


def _now_ms() -> int:
    return int(time.time() * 1000)


class OpenFilesManager:
    """Most-recently-used list of files the user has been working in.

    Invariants:
        - at most ``max_files`` entries, most recently activated first
        - at most one entry is active, and only it carries cursor/selection
    """

    def __init__(
        self,
        workspace: Workspace,
        *,
        max_files: int = MAX_FILES,
        max_selected_text_length: int = MAX_SELECTED_TEXT_LENGTH,
        debounce_delay: float = DEBOUNCE_DELAY,
        active_editor: TextEditor | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._workspace = workspace
        self._max_files = max_files
        self._max_selected_text_length = max_selected_text_length
        self._open_files: list[TrackedFile] = []
        self._listeners: list[Callable[[], None]] = []
        self._debouncer = Debouncer(debounce_delay, self._emit_change, loop=loop)

        # The editor focused before tracking started; no change is signalled
        if active_editor is not None and active_editor.uri.is_file:
            self._add_or_move_to_front(active_editor)

    # -- editor events -------------------------------------------------------

    def on_active_editor_changed(self, editor: TextEditor | None) -> None:
        if editor is None or not editor.uri.is_file:
            return
        self._add_or_move_to_front(editor)
        self._fire_with_debounce()

    def on_selection_changed(self, editor: TextEditor) -> None:
        if not editor.uri.is_file:
            return
        self._update_active_context(editor)
        self._fire_with_debounce()

    def on_document_closed(self, uri: Uri) -> None:
        if not uri.is_file:
            return
        self._remove(uri)
        self._fire_with_debounce()

    def on_files_deleted(self, uris: Iterable[Uri]) -> None:
        for uri in uris:
            if uri.is_file:
                self._remove(uri)
        self._fire_with_debounce()

    def on_files_renamed(self, renames: Iterable[tuple[Uri, Uri]]) -> None:
        for old_uri, new_uri in renames:
            if not old_uri.is_file:
                continue
            if new_uri.is_file:
                self._rename(old_uri, new_uri)
            else:
                self._remove(old_uri)
        self._fire_with_debounce()

    # -- listeners -----------------------------------------------------------

    def on_did_change(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a debounced change listener. Returns an unregister function."""
        self._listeners.append(listener)

        def unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unregister

    @property
    def state(self) -> IdeContext:
        """Immutable snapshot of the tracked files and workspace trust."""
        return IdeContext(
            workspace_state=WorkspaceState(
                open_files=tuple(f.to_file() for f in self._open_files),
                is_trusted=self._workspace.is_trusted,
            )
        )

    @property
    def change_pending(self) -> bool:
        return self._debouncer.pending

    def dispose(self) -> None:
        self._debouncer.cancel()
        self._listeners.clear()

    # -- internals -----------------------------------------------------------

    def _index_of(self, path: str) -> int:
        for index, tracked in enumerate(self._open_files):
            if tracked.path == path:
                return index
        return -1

    def _add_or_move_to_front(self, editor: TextEditor) -> None:
        for tracked in self._open_files:
            if tracked.is_active:
                tracked.deactivate()

        path = editor.uri.fs_path
        index = self._index_of(path)
        if index != -1:
            del self._open_files[index]

        self._open_files.insert(0, TrackedFile(path=path, timestamp=_now_ms(), is_active=True))
        if len(self._open_files) > self._max_files:
            self._open_files.pop()

        self._update_active_context(editor)

    def _remove(self, uri: Uri) -> None:
        index = self._index_of(uri.fs_path)
        if index != -1:
            del self._open_files[index]

    def _rename(self, old_uri: Uri, new_uri: Uri) -> None:
        index = self._index_of(old_uri.fs_path)
        if index != -1:
            self._open_files[index].path = new_uri.fs_path

    def _update_active_context(self, editor: TextEditor) -> None:
        index = self._index_of(editor.uri.fs_path)
        if index == -1 or not self._open_files[index].is_active:
            return
        tracked = self._open_files[index]

        if editor.cursor is not None:
            tracked.cursor = Cursor(line=editor.cursor.line + 1, character=editor.cursor.character)
        else:
            tracked.cursor = None

        selected = editor.selected_text
        tracked.selected_text = (
            truncate_selection(selected, self._max_selected_text_length) if selected else None
        )

    def _fire_with_debounce(self) -> None:
        self._debouncer.trigger()

    def _emit_change(self) -> None:
        log.debug("Workspace context changed (%d open files)", len(self._open_files))
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                log.exception("Context change listener failed")
