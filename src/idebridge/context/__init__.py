"""Workspace context aggregation: recently active files and selections."""

from idebridge.context.debounce import Debouncer
from idebridge.context.open_files import (
    MAX_FILES,
    MAX_SELECTED_TEXT_LENGTH,
    TRUNCATION_MARKER,
    OpenFilesManager,
    TrackedFile,
)

__all__ = [
    "Debouncer",
    "OpenFilesManager",
    "TrackedFile",
    "MAX_FILES",
    "MAX_SELECTED_TEXT_LENGTH",
    "TRUNCATION_MARKER",
]
