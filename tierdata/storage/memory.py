from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .base import MirrorStore


class InMemoryMirrorStore(MirrorStore):
    """Process-local mirror. Used by tests and by demo mode without TIERDATA_MIRROR_PATH."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get_raw(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_raw(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_many(self, keys: Iterable[str]) -> None:
        for key in list(keys):
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._data)
