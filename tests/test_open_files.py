"""Tests for OpenFilesManager: MRU tracking, selection, and debounced change events."""

from __future__ import annotations

import asyncio

import pytest

from idebridge.context import MAX_SELECTED_TEXT_LENGTH, TRUNCATION_MARKER, OpenFilesManager
from idebridge.types import IdeContext
from idebridge.workspace import Position, TextEditor, Uri, Workspace

DEBOUNCE = 0.01
SETTLE = 0.05


def editor(path: str, line: int = 0, character: int = 0, selected: str = "") -> TextEditor:
    return TextEditor(Uri.file(path), cursor=Position(line, character), selected_text=selected)


class ChangeRecorder:
    """Listener that snapshots the manager state on every change event."""

    def __init__(self, manager: OpenFilesManager) -> None:
        self.manager = manager
        self.snapshots: list[IdeContext] = []

    def __call__(self) -> None:
        self.snapshots.append(self.manager.state)


@pytest.fixture
def manager(workspace: Workspace) -> OpenFilesManager:
    manager = OpenFilesManager(workspace, debounce_delay=DEBOUNCE)
    yield manager
    manager.dispose()


@pytest.fixture
def recorder(manager: OpenFilesManager) -> ChangeRecorder:
    recorder = ChangeRecorder(manager)
    manager.on_did_change(recorder)
    return recorder


def paths(manager: OpenFilesManager) -> list[str]:
    return [f.path for f in manager.state.workspace_state.open_files]


class TestActiveEditor:
    """Tests for on_active_editor_changed."""

    @pytest.mark.asyncio
    async def test_new_file_becomes_active_at_front(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        manager.on_active_editor_changed(editor("/b.py"))

        files = manager.state.workspace_state.open_files
        assert [f.path for f in files] == ["/b.py", "/a.py"]
        assert files[0].is_active is True
        assert files[1].is_active is False

    @pytest.mark.asyncio
    async def test_only_active_file_has_cursor_and_selection(
        self, manager: OpenFilesManager
    ) -> None:
        """Deactivated entries lose cursor and selected text."""
        manager.on_active_editor_changed(editor("/a.py", 4, 2, selected="foo"))
        manager.on_active_editor_changed(editor("/b.py", 0, 0))

        a = manager.state.workspace_state.open_files[1]
        assert a.path == "/a.py"
        assert a.cursor is None
        assert a.selected_text is None

    @pytest.mark.asyncio
    async def test_cursor_line_is_one_based(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py", line=9, character=3))

        cursor = manager.state.workspace_state.open_files[0].cursor
        assert cursor is not None
        assert (cursor.line, cursor.character) == (10, 3)

    @pytest.mark.asyncio
    async def test_reactivation_moves_to_front(self, manager: OpenFilesManager) -> None:
        for name in ("/a.py", "/b.py", "/c.py"):
            manager.on_active_editor_changed(editor(name))
        manager.on_active_editor_changed(editor("/a.py"))

        assert paths(manager) == ["/a.py", "/c.py", "/b.py"]
        active = [f for f in manager.state.workspace_state.open_files if f.is_active]
        assert len(active) == 1

    @pytest.mark.asyncio
    async def test_caps_at_max_files(self, workspace: Workspace) -> None:
        """The least recently used entry is evicted past the cap."""
        manager = OpenFilesManager(workspace, debounce_delay=DEBOUNCE)
        for i in range(12):
            manager.on_active_editor_changed(editor(f"/file{i}.py"))

        files = paths(manager)
        assert len(files) == 10
        assert files[0] == "/file11.py"
        assert "/file0.py" not in files
        assert "/file1.py" not in files
        manager.dispose()

    @pytest.mark.asyncio
    async def test_custom_max_files(self, workspace: Workspace) -> None:
        manager = OpenFilesManager(workspace, max_files=2, debounce_delay=DEBOUNCE)
        for name in ("/a.py", "/b.py", "/c.py"):
            manager.on_active_editor_changed(editor(name))

        assert paths(manager) == ["/c.py", "/b.py"]
        manager.dispose()

    @pytest.mark.asyncio
    async def test_non_file_uris_ignored(
        self, manager: OpenFilesManager, recorder: ChangeRecorder
    ) -> None:
        """Untitled and other non-file documents are never tracked."""
        manager.on_active_editor_changed(TextEditor(Uri("untitled", "Untitled-1")))
        manager.on_active_editor_changed(None)

        await asyncio.sleep(SETTLE)

        assert paths(manager) == []
        assert recorder.snapshots == []

    @pytest.mark.asyncio
    async def test_timestamp_recorded(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        assert manager.state.workspace_state.open_files[0].timestamp > 0


class TestSelection:
    """Tests for on_selection_changed."""

    @pytest.mark.asyncio
    async def test_selection_updates_active_file(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        manager.on_selection_changed(editor("/a.py", 2, 5, selected="hello"))

        active = manager.state.workspace_state.open_files[0]
        assert active.selected_text == "hello"
        assert active.cursor is not None
        assert (active.cursor.line, active.cursor.character) == (3, 5)

    @pytest.mark.asyncio
    async def test_empty_selection_clears_text(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py", selected="hello"))
        manager.on_selection_changed(editor("/a.py"))

        assert manager.state.workspace_state.open_files[0].selected_text is None

    @pytest.mark.asyncio
    async def test_selection_on_inactive_file_ignored(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        manager.on_active_editor_changed(editor("/b.py"))
        manager.on_selection_changed(editor("/a.py", selected="nope"))

        a = manager.state.workspace_state.open_files[1]
        assert a.selected_text is None
        assert a.cursor is None

    @pytest.mark.asyncio
    async def test_long_selection_truncated(self, manager: OpenFilesManager) -> None:
        text = "x" * (MAX_SELECTED_TEXT_LENGTH + 100)
        manager.on_active_editor_changed(editor("/a.py", selected=text))

        selected = manager.state.workspace_state.open_files[0].selected_text
        assert selected == "x" * MAX_SELECTED_TEXT_LENGTH + TRUNCATION_MARKER

    @pytest.mark.asyncio
    async def test_selection_at_limit_not_truncated(self, manager: OpenFilesManager) -> None:
        text = "y" * MAX_SELECTED_TEXT_LENGTH
        manager.on_active_editor_changed(editor("/a.py", selected=text))

        assert manager.state.workspace_state.open_files[0].selected_text == text


class TestRemoval:
    """Tests for close, delete, and rename events."""

    @pytest.mark.asyncio
    async def test_document_closed_removes_entry(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        manager.on_active_editor_changed(editor("/b.py"))
        manager.on_document_closed(Uri.file("/a.py"))

        assert paths(manager) == ["/b.py"]

    @pytest.mark.asyncio
    async def test_closing_untracked_file_is_harmless(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        manager.on_document_closed(Uri.file("/other.py"))

        assert paths(manager) == ["/a.py"]

    @pytest.mark.asyncio
    async def test_files_deleted(self, manager: OpenFilesManager) -> None:
        for name in ("/a.py", "/b.py", "/c.py"):
            manager.on_active_editor_changed(editor(name))
        manager.on_files_deleted([Uri.file("/a.py"), Uri.file("/c.py")])

        assert paths(manager) == ["/b.py"]

    @pytest.mark.asyncio
    async def test_rename_keeps_position_and_state(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        manager.on_active_editor_changed(editor("/b.py", selected="sel"))
        manager.on_files_renamed([(Uri.file("/b.py"), Uri.file("/renamed.py"))])

        files = manager.state.workspace_state.open_files
        assert [f.path for f in files] == ["/renamed.py", "/a.py"]
        assert files[0].is_active is True
        assert files[0].selected_text == "sel"

    @pytest.mark.asyncio
    async def test_rename_to_non_file_removes(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        manager.on_files_renamed([(Uri.file("/a.py"), Uri("vscode-remote", "/a.py"))])

        assert paths(manager) == []


class TestChangeEvents:
    """Tests for debounced change notification."""

    @pytest.mark.asyncio
    async def test_burst_emits_one_event_with_final_state(
        self, manager: OpenFilesManager, recorder: ChangeRecorder
    ) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        manager.on_active_editor_changed(editor("/b.py"))
        manager.on_selection_changed(editor("/b.py", 1, 1, selected="final"))

        assert recorder.snapshots == []
        assert manager.change_pending

        await asyncio.sleep(SETTLE)

        assert len(recorder.snapshots) == 1
        snapshot = recorder.snapshots[0].workspace_state
        assert [f.path for f in snapshot.open_files] == ["/b.py", "/a.py"]
        assert snapshot.open_files[0].selected_text == "final"
        assert not manager.change_pending

    @pytest.mark.asyncio
    async def test_separate_bursts_emit_separately(
        self, manager: OpenFilesManager, recorder: ChangeRecorder
    ) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        await asyncio.sleep(SETTLE)
        manager.on_document_closed(Uri.file("/a.py"))
        await asyncio.sleep(SETTLE)

        assert len(recorder.snapshots) == 2
        assert recorder.snapshots[1].workspace_state.open_files == ()

    @pytest.mark.asyncio
    async def test_unregister(self, manager: OpenFilesManager) -> None:
        calls: list[int] = []
        unregister = manager.on_did_change(lambda: calls.append(1))
        unregister()

        manager.on_active_editor_changed(editor("/a.py"))
        await asyncio.sleep(SETTLE)

        assert calls == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(
        self, manager: OpenFilesManager, recorder: ChangeRecorder
    ) -> None:
        def broken() -> None:
            raise RuntimeError("boom")

        manager.on_did_change(broken)
        second = ChangeRecorder(manager)
        manager.on_did_change(second)

        manager.on_active_editor_changed(editor("/a.py"))
        await asyncio.sleep(SETTLE)

        assert len(recorder.snapshots) == 1
        assert len(second.snapshots) == 1

    @pytest.mark.asyncio
    async def test_dispose_cancels_pending_change(
        self, manager: OpenFilesManager, recorder: ChangeRecorder
    ) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        manager.dispose()

        await asyncio.sleep(SETTLE)

        assert recorder.snapshots == []


class TestState:
    """Tests for the state snapshot."""

    @pytest.mark.asyncio
    async def test_snapshot_is_immutable(self, manager: OpenFilesManager) -> None:
        manager.on_active_editor_changed(editor("/a.py"))
        snapshot = manager.state

        manager.on_active_editor_changed(editor("/b.py"))

        assert [f.path for f in snapshot.workspace_state.open_files] == ["/a.py"]
        assert snapshot.workspace_state.open_files[0].is_active is True

    def test_trust_reflects_workspace(self) -> None:
        manager = OpenFilesManager(Workspace(["/w"], is_trusted=False))
        assert manager.state.workspace_state.is_trusted is False

    def test_wire_format(self, manager: OpenFilesManager) -> None:
        """Serialised state uses camelCase keys and omits empty fields."""
        data = manager.state.model_dump(by_alias=True, mode="json", exclude_none=True)
        assert data == {"workspaceState": {"openFiles": [], "isTrusted": True}}


class TestInitialEditor:
    """The editor already focused when tracking starts."""

    @pytest.mark.asyncio
    async def test_seeds_first_snapshot(self, workspace: Workspace) -> None:
        manager = OpenFilesManager(
            workspace,
            debounce_delay=DEBOUNCE,
            active_editor=editor("/open.py", line=1, character=4, selected="x"),
        )

        (tracked,) = manager.state.workspace_state.open_files
        assert tracked.path == "/open.py"
        assert tracked.is_active is True
        assert tracked.cursor is not None and tracked.cursor.line == 2
        assert tracked.selected_text == "x"
        assert manager.change_pending is False
        manager.dispose()

    @pytest.mark.asyncio
    async def test_non_file_editor_ignored(self, workspace: Workspace) -> None:
        settings = TextEditor(Uri.parse("vscode-settings:/user"), cursor=Position(0, 0))

        manager = OpenFilesManager(workspace, active_editor=settings)

        assert manager.state.workspace_state.open_files == ()
        manager.dispose()
