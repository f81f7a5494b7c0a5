from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Storage(Protocol):
    """
    Synchronous string-keyed durable storage.

    Contract
    - `get(key)` returns the stored string, or None when the key is absent.
      None is the only not-found sentinel; an empty string is a stored value.
    - `set(key, value)` overwrites; `value` must be a str.
    - `remove(key)` is a no-op for absent keys.
    - `key(index)` returns the key at ordinal `index`, or None when `index`
      falls outside `[0, len(storage))` (negative indices included).
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def key(self, index: int) -> Optional[str]: ...

    def __len__(self) -> int: ...


def check_value(key: str, value: object) -> str:
    if not isinstance(value, str):
        raise TypeError(
            f"storage values must be str, got {type(value).__name__} for key {key!r}"
        )
    return value
