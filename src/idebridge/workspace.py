"""Editor-side primitives: document URIs, editor snapshots, workspace folders.

These are the shapes in which the host editor reports what the user is doing.
The bridge never talks to the editor directly; the host adapter translates
its own events into calls on :class:`OpenFilesManager`,
:class:`DiffManager` and :class:`Workspace` using these types.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from idebridge.logging import get_logger

log = get_logger("workspace")

FILE_SCHEME = "file"
UNTITLED_SCHEME = "untitled"


@dataclass(frozen=True)
class Uri:
    """Minimal document URI: ``scheme:path?query``."""

    scheme: str
    path: str
    query: str = ""

    @classmethod
    def file(cls, path: str | os.PathLike[str]) -> Uri:
        return cls(scheme=FILE_SCHEME, path=os.fspath(path))

    @classmethod
    def parse(cls, value: str) -> Uri:
        scheme, sep, rest = value.partition(":")
        if not sep:
            raise ValueError(f"URI has no scheme: {value!r}")
        path, _, query = rest.partition("?")
        return cls(scheme=scheme, path=path, query=query)

    @property
    def fs_path(self) -> str:
        return self.path

    @property
    def is_file(self) -> bool:
        return self.scheme == FILE_SCHEME

    def __str__(self) -> str:
        if self.query:
            return f"{self.scheme}:{self.path}?{self.query}"
        return f"{self.scheme}:{self.path}"


@dataclass(frozen=True)
class Position:
    """Zero-based line/character position as reported by the editor."""

    line: int
    character: int


@dataclass(frozen=True)
class TextEditor:
    """Snapshot of an editor: its document, cursor, and selected text."""

    uri: Uri
    cursor: Position | None = None
    selected_text: str = ""


class Workspace:
    """Workspace folders and trust state of the editor window.

    Listeners registered with :meth:`on_did_change` are called whenever the
    folder list or trust state changes.
    """

    def __init__(self, folders: Sequence[str] = (), is_trusted: bool = True) -> None:
        self._folders: tuple[str, ...] = tuple(folders)
        self._is_trusted = is_trusted
        self._listeners: list[Callable[[], None]] = []

    @property
    def folders(self) -> tuple[str, ...]:
        return self._folders

    @property
    def is_trusted(self) -> bool:
        return self._is_trusted

    @property
    def workspace_path(self) -> str:
        """Folder paths joined with the platform path separator."""
        return os.pathsep.join(self._folders)

    def set_folders(self, folders: Sequence[str]) -> None:
        folders = tuple(folders)
        if folders == self._folders:
            return
        self._folders = folders
        self._notify()

    def set_trusted(self, is_trusted: bool) -> None:
        if is_trusted == self._is_trusted:
            return
        self._is_trusted = is_trusted
        self._notify()

    def on_did_change(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unregister

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                log.warning("Workspace listener error: %s", e)
