"""Diff rendering collaborator.

The editor host draws diff views; the bridge only needs to open them, read
back what the user left in the proposed side, and close them. Hosts implement
:class:`DiffRenderer`. :class:`InMemoryDiffRenderer` is the headless
implementation used when the bridge runs standalone.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from idebridge.diff.content import DiffContentProvider
from idebridge.logging import get_logger
from idebridge.workspace import Uri

log = get_logger("diff.renderer")


@runtime_checkable
class DiffRenderer(Protocol):
    """Editor-side operations the diff manager depends on."""

    async def show_diff(self, left: Uri, right: Uri, title: str) -> None:
        """Display ``left`` (original) and ``right`` (proposed) side by side."""
        ...

    async def read_document(self, uri: Uri) -> str:
        """Current text of a document, including unsaved user edits."""
        ...

    async def close_diff_view(self, uri: Uri) -> bool:
        """Close the view whose proposed side is ``uri``. False if none was open."""
        ...

    async def set_diff_visible(self, visible: bool) -> None:
        """Update the editor's "diff visible" context flag."""
        ...


@dataclass
class DiffViewSurface:
    """An open diff view in the headless renderer."""

    left: Uri
    right: Uri
    title: str


class InMemoryDiffRenderer:
    """Headless renderer that keeps views and user edits in memory."""

    def __init__(self, content_provider: DiffContentProvider) -> None:
        self._content_provider = content_provider
        self._views: dict[str, DiffViewSurface] = {}
        self._edits: dict[str, str] = {}
        self.diff_visible = False

    @property
    def open_views(self) -> list[DiffViewSurface]:
        return list(self._views.values())

    def is_open(self, uri: Uri) -> bool:
        return str(uri) in self._views

    def edit(self, uri: Uri, text: str) -> None:
        """Simulate the user editing the proposed side of a view."""
        self._edits[str(uri)] = text

    async def show_diff(self, left: Uri, right: Uri, title: str) -> None:
        self._views[str(right)] = DiffViewSurface(left=left, right=right, title=title)
        log.debug("Opened diff view %s", title)

    async def read_document(self, uri: Uri) -> str:
        key = str(uri)
        if key in self._edits:
            return self._edits[key]
        return self._content_provider.provide_text_document_content(uri)

    async def close_diff_view(self, uri: Uri) -> bool:
        key = str(uri)
        self._edits.pop(key, None)
        return self._views.pop(key, None) is not None

    async def set_diff_visible(self, visible: bool) -> None:
        self.diff_visible = visible
