"""idebridge: editor-side control plane for a local command-line assistant."""

__version__ = "0.1.0"

# Public API
from idebridge.config import Config, get_config, load_config
from idebridge.context import OpenFilesManager
from idebridge.diff import DiffContentProvider, DiffManager, DiffRenderer, InMemoryDiffRenderer
from idebridge.server import IDEServer
from idebridge.types import File, IdeContext
from idebridge.workspace import Position, TextEditor, Uri, Workspace

__all__ = [
    # Server
    "IDEServer",
    # Context
    "OpenFilesManager",
    "IdeContext",
    "File",
    # Diffs
    "DiffManager",
    "DiffContentProvider",
    "DiffRenderer",
    "InMemoryDiffRenderer",
    # Editor primitives
    "Uri",
    "Position",
    "TextEditor",
    "Workspace",
    # Config
    "Config",
    "load_config",
    "get_config",
]
