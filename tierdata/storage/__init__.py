"""Local Mirror storage backends."""
from __future__ import annotations

from typing import Optional

from .base import MirrorStore
from .memory import InMemoryMirrorStore
from .sqlite import SqliteMirrorStore


def open_mirror(path: Optional[str]) -> MirrorStore:
    if path:
        return SqliteMirrorStore(path)
    return InMemoryMirrorStore()


__all__ = ["MirrorStore", "InMemoryMirrorStore", "SqliteMirrorStore", "open_mirror"]
