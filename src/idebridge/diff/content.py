"""Proposed-content cache backing the right-hand side of diff views."""

from __future__ import annotations

from collections.abc import Callable

from idebridge.workspace import Uri


class DiffContentProvider:
    """Maps diff document URIs to the proposed content shown for them."""

    def __init__(self) -> None:
        self._content: dict[str, str] = {}
        self._listeners: list[Callable[[Uri], None]] = []

    def on_did_change(self, listener: Callable[[Uri], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unregister

    def provide_text_document_content(self, uri: Uri) -> str:
        return self._content.get(str(uri), "")

    def set_content(self, uri: Uri, content: str) -> None:
        self._content[str(uri)] = content
        for listener in list(self._listeners):
            listener(uri)

    def get_content(self, uri: Uri) -> str | None:
        return self._content.get(str(uri))

    def delete_content(self, uri: Uri) -> None:
        self._content.pop(str(uri), None)

    def __contains__(self, uri: Uri) -> bool:
        return str(uri) in self._content

    def __len__(self) -> int:
        return len(self._content)
