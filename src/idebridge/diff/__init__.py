"""Diff proposal lifecycle: open, accept, cancel, close."""

from idebridge.diff.content import DiffContentProvider
from idebridge.diff.manager import DIFF_SCHEME, DiffInfo, DiffManager
from idebridge.diff.renderer import DiffRenderer, InMemoryDiffRenderer

__all__ = [
    "DIFF_SCHEME",
    "DiffContentProvider",
    "DiffInfo",
    "DiffManager",
    "DiffRenderer",
    "InMemoryDiffRenderer",
]
