from __future__ import annotations

import copy
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .errors import StrictModeViolation, UnknownActionError, UnknownMutationError
from .models import NO_PAYLOAD, ActionContext, MutationRecord, Watcher


FLUSH_SYNC = "sync"
FLUSH_POST = "post"

StateFactory = Callable[[], Dict[str, Any]]
Plugin = Callable[["Store"], Any]
Subscriber = Callable[[MutationRecord, Dict[str, Any]], None]


def _same(old: Any, new: Any) -> bool:
    """Equality that also requires matching types, recursively (1, 1.0 and True differ)."""
    if type(old) is not type(new):
        return False
    if isinstance(old, dict):
        return old.keys() == new.keys() and all(_same(v, new[k]) for k, v in old.items())
    if isinstance(old, (list, tuple)):
        return len(old) == len(new) and all(_same(a, b) for a, b in zip(old, new))
    return bool(old == new)


def _changed(old: Any, new: Any) -> bool:
    if old is new:
        return False
    return not _same(old, new)


class Store:
    """
    Small reactive state container with named mutations and actions.

    - `state` is a plain dict; mutation handlers change it in place.
    - `commit(type, payload)` runs a mutation handler, flushes "sync"
      watchers, then notifies subscribers, all before returning.
    - `dispatch(type, payload)` runs an action handler with an
      `ActionContext`; actions commit mutations and may dispatch others.
    - `watch(getter, callback, deep=..., flush=...)` observes a derived value.
      Deep watchers compare against a deep copy of the last seen value, so
      in-place edits of nested dicts and lists are detected.
    - `plugins` are called once with the store at the end of construction.
      Their return values are kept and disposed together with the store.

    Handlers receive the payload only when one was given: a mutation is
    `handler(state)` or `handler(state, payload)`, an action is
    `handler(ctx)` or `handler(ctx, payload)`. An explicit None is a payload.

    With `strict=True`, any change to the state made outside a mutation
    handler raises StrictModeViolation at the next commit.
    """

    def __init__(
        self,
        *,
        state: Union[Dict[str, Any], StateFactory, None] = None,
        mutations: Optional[Mapping[str, Callable[..., None]]] = None,
        actions: Optional[Mapping[str, Callable[..., Any]]] = None,
        plugins: Iterable[Plugin] = (),
        strict: bool = False,
    ) -> None:
        initial = state() if callable(state) else state
        if initial is None:
            initial = {}
        if not isinstance(initial, dict):
            raise TypeError(f"state must be a dict or a factory returning one, got {type(initial).__name__}")
        self._state: Dict[str, Any] = initial
        self._mutations = dict(mutations or {})
        self._actions = dict(actions or {})
        self._subscribers: List[Subscriber] = []
        self._watchers: List[Watcher] = []
        self._pending: List[Watcher] = []
        self._depth = 0
        self._strict = strict
        self._snapshot: Optional[Dict[str, Any]] = None
        self._plugin_results: List[Any] = []

        for plugin in plugins:
            result = plugin(self)
            if result is not None:
                self._plugin_results.append(result)

        self._take_snapshot()

    @property
    def state(self) -> Dict[str, Any]:
        return self._state

    # --------------- Mutations & actions ---------------
    def commit(self, mutation_type: str, payload: Any = NO_PAYLOAD) -> None:
        handler = self._mutations.get(mutation_type)
        if handler is None:
            raise UnknownMutationError(mutation_type)
        self._check_strict()

        self._depth += 1
        try:
            if payload is NO_PAYLOAD:
                handler(self._state)
            else:
                handler(self._state, payload)
            self._take_snapshot()
            self._flush()
            record = MutationRecord(
                type=mutation_type,
                payload=None if payload is NO_PAYLOAD else payload,
            )
            for subscriber in list(self._subscribers):
                subscriber(record, self._state)
        finally:
            self._depth -= 1
        self._run_post_if_idle()

    def dispatch(self, action_type: str, payload: Any = NO_PAYLOAD) -> Any:
        handler = self._actions.get(action_type)
        if handler is None:
            raise UnknownActionError(action_type)

        ctx = ActionContext(self)
        self._depth += 1
        try:
            result = handler(ctx) if payload is NO_PAYLOAD else handler(ctx, payload)
        finally:
            self._depth -= 1
        self._run_post_if_idle()
        return result

    def replace_state(self, new_state: Dict[str, Any]) -> None:
        """Swap the whole state. Watchers fire; subscribers are not notified."""
        if not isinstance(new_state, dict):
            raise TypeError(f"state must be a dict, got {type(new_state).__name__}")
        self._state = new_state
        self._take_snapshot()
        self._flush()
        self._run_post_if_idle()

    def mark_clean(self) -> None:
        """Accept the current state as committed.

        For plugins that load state directly into `state` on a store that
        already exists; without it a strict store would report the load as a
        change made outside a mutation.
        """
        self._take_snapshot()

    # --------------- Observation ---------------
    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """Call `fn(mutation, state)` after every commit. Returns an unsubscribe function."""
        self._subscribers.append(fn)

        def unsubscribe() -> None:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

        return unsubscribe

    def watch(
        self,
        getter: Callable[[Dict[str, Any]], Any],
        callback: Callable[[Any, Any], None],
        *,
        deep: bool = False,
        immediate: bool = False,
        flush: str = FLUSH_SYNC,
    ) -> Callable[[], None]:
        """
        Call `callback(new, old)` whenever `getter(state)` changes.

        - flush="sync": the callback runs inside the commit that changed the
          value, before `commit` returns.
        - flush="post": the callback runs once the outermost commit/dispatch
          has finished, with the value at that time.
        Returns an unwatch function.
        """
        if flush not in (FLUSH_SYNC, FLUSH_POST):
            raise ValueError(f"flush must be {FLUSH_SYNC!r} or {FLUSH_POST!r}, got {flush!r}")

        value = getter(self._state)
        watcher = Watcher(
            getter=getter,
            callback=callback,
            deep=deep,
            flush=flush,
            last=copy.deepcopy(value) if deep else value,
        )
        self._watchers.append(watcher)
        if immediate:
            callback(value, None)

        def unwatch() -> None:
            watcher.active = False
            if watcher in self._watchers:
                self._watchers.remove(watcher)

        return unwatch

    # --------------- Lifecycle ---------------
    def dispose(self) -> None:
        """Release plugin results, watchers and subscribers."""
        for result in self._plugin_results:
            dispose = getattr(result, "dispose", None)
            if callable(dispose):
                dispose()
            elif callable(result):
                result()
        self._plugin_results.clear()
        for watcher in self._watchers:
            watcher.active = False
        self._watchers.clear()
        self._pending.clear()
        self._subscribers.clear()

    # --------------- Internal ---------------
    def _flush(self) -> None:
        for watcher in list(self._watchers):
            if not watcher.active:
                continue
            value = watcher.getter(self._state)
            if not _changed(watcher.last, value):
                continue
            old = watcher.last
            watcher.last = copy.deepcopy(value) if watcher.deep else value
            if watcher.flush == FLUSH_SYNC:
                watcher.callback(value, old)
            elif watcher not in self._pending:
                watcher.old = old
                self._pending.append(watcher)

    def _run_post_if_idle(self) -> None:
        if self._depth > 0:
            return
        while self._pending:
            watcher = self._pending.pop(0)
            if not watcher.active:
                continue
            old, watcher.old = watcher.old, None
            watcher.callback(watcher.getter(self._state), old)

    def _take_snapshot(self) -> None:
        if self._strict:
            self._snapshot = copy.deepcopy(self._state)

    def _check_strict(self) -> None:
        if self._strict and self._snapshot is not None and not _same(self._snapshot, self._state):
            raise StrictModeViolation("state was modified outside of a mutation handler")
