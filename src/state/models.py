from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .store import Store


# Default for `payload` arguments; distinguishes "no payload" from an explicit None
NO_PAYLOAD: Any = object()


@dataclass(frozen=True)
class MutationRecord:
    """A committed mutation as seen by `Store.subscribe` callbacks."""

    type: str
    payload: Any = None


class ActionContext:
    """
    The object passed to action handlers.

    Exposes the live `state` plus `commit` and `dispatch` bound to the store,
    so actions read as `ctx.commit("count", ctx.state["count"] + 1)`.
    """

    def __init__(self, store: "Store") -> None:
        self._store = store

    @property
    def state(self) -> dict:
        return self._store.state

    def commit(self, mutation_type: str, payload: Any = NO_PAYLOAD) -> None:
        self._store.commit(mutation_type, payload)

    def dispatch(self, action_type: str, payload: Any = NO_PAYLOAD) -> Any:
        return self._store.dispatch(action_type, payload)


@dataclass(eq=False)
class Watcher:
    getter: Callable[[dict], Any]
    callback: Callable[[Any, Any], None]
    deep: bool
    flush: str
    last: Any = None
    active: bool = True
    old: Optional[Any] = None
