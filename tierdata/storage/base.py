from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

logger = logging.getLogger(__name__)


class MirrorStore(ABC):
    """
    Synchronous JSON key-value store used as the Local Mirror.

    Implementations persist serialized strings; `get` always hands back a
    freshly decoded value so callers can mutate it without aliasing the store.
    Values are replaced wholesale per key.
    """

    @abstractmethod
    def get_raw(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set_raw(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_many(self, keys: Iterable[str]) -> None:
        """Remove every key in one operation (all or nothing from the caller's view)."""
        raise NotImplementedError

    @abstractmethod
    def keys(self) -> List[str]:
        raise NotImplementedError

    def get(self, key: str) -> Any:
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Mirror value under %r is not valid JSON; treating it as absent", key)
            return None

    def set(self, key: str, value: Any) -> None:
        self.set_raw(key, json.dumps(value, sort_keys=True, ensure_ascii=False))

    def remove(self, key: str) -> None:
        self.remove_many([key])

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def close(self) -> None:
        pass
