from __future__ import annotations

from typing import Dict, Optional

from .base import check_value


class MemoryStorage:
    """
    In-memory storage backed by an insertion-ordered dict.

    Ordinals returned by `key()` follow first-insertion order; overwriting an
    existing key keeps its position.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = {}
        for k, v in (initial or {}).items():
            self.set(k, v)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = check_value(key, value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data = {}

    def key(self, index: int) -> Optional[str]:
        if index < 0 or index >= len(self._data):
            return None
        return list(self._data)[index]

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MemoryStorage({self._data!r})"
