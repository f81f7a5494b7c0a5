from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence, Union

from state import FLUSH_SYNC, MutationRecord, Store
from storage import Storage

from .config import EngineConfiguration, TriggerStrategy
from .fields import FieldSpecification, StateMap, resolve_fields


logger = logging.getLogger(__name__)


class Subscription:
    """Handle over the observations registered by `attach_persistence`.

    `dispose()` releases them and is safe to call more than once.
    """

    def __init__(self, disposers: Iterable[Callable[[], None]] = ()) -> None:
        self._disposers: List[Callable[[], None]] = list(disposers)

    @property
    def active(self) -> bool:
        return bool(self._disposers)

    def dispose(self) -> None:
        while self._disposers:
            self._disposers.pop()()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()


@dataclass
class AttachedInstance:
    """One plugin configuration bound to one store."""

    config: EngineConfiguration
    specs: Sequence[FieldSpecification]
    storage: Storage
    store: Store
    subscription: Subscription

    @property
    def active(self) -> bool:
        return self.subscription.active

    def dispose(self) -> None:
        self.subscription.dispose()


# --------------- Hydration ---------------
def hydrate(specs: Iterable[FieldSpecification], storage: Storage, store: Store) -> None:
    """Overwrite initial state with previously stored values.

    Fields with nothing stored keep their initial value. Values are assigned
    straight into `store.state`, so no mutation is committed and no watcher
    fires; the store then accepts them as its committed state. Decode errors
    are logged and re-raised.
    """
    for spec in specs:
        if spec.key not in store.state:
            logger.debug("not hydrating %r: no such state field", spec.key)
            continue
        raw = storage.get(spec.storage_key)
        if raw is None:
            continue
        try:
            value = spec.deserialize(raw)
        except Exception:
            logger.error("failed to decode stored value for field %r (storage key %r)", spec.key, spec.storage_key)
            raise
        store.state[spec.key] = value
        logger.debug("hydrated %r from %r", spec.key, spec.storage_key)
    store.mark_clean()


# --------------- Write-back ---------------
def _persist(spec: FieldSpecification, storage: Storage, value: Any) -> None:
    storage.set(spec.storage_key, spec.serialize(value))
    logger.debug("persisted %r to %r", spec.key, spec.storage_key)


def _watch_field(spec: FieldSpecification, storage: Storage, store: Store) -> Callable[[], None]:
    def on_change(value: Any, _old: Any) -> None:
        _persist(spec, storage, value)

    # Deep so in-place edits of nested lists/dicts are seen; sync so the write
    # lands before commit() returns.
    return store.watch(lambda state: state.get(spec.key), on_change, deep=True, flush=FLUSH_SYNC)


def _subscribe_mutations(specs: Sequence[FieldSpecification], storage: Storage, store: Store) -> Callable[[], None]:
    by_trigger: Dict[str, List[FieldSpecification]] = {}
    for spec in specs:
        by_trigger.setdefault(spec.trigger, []).append(spec)

    def on_mutation(mutation: MutationRecord, state: Dict[str, Any]) -> None:
        for spec in by_trigger.get(mutation.type, ()):
            if spec.key in state:
                _persist(spec, storage, state[spec.key])

    return store.subscribe(on_mutation)


def attach_persistence(
    specs: Sequence[FieldSpecification],
    storage: Storage,
    store: Store,
    strategy: TriggerStrategy = TriggerStrategy.WATCH,
) -> Subscription:
    """Register the observations that write tracked fields back to storage."""
    if strategy == TriggerStrategy.MUTATION:
        return Subscription([_subscribe_mutations(specs, storage, store)])
    return Subscription(_watch_field(spec, storage, store) for spec in specs)


# --------------- Plugin factory ---------------
def create_storage_plugin(
    state_map: StateMap,
    options: Union[EngineConfiguration, Mapping[str, Any], None] = None,
) -> Callable[[Store], AttachedInstance]:
    """
    Build a store plugin that keeps the fields named in `state_map` in storage.

    `state_map` maps state field names to a declaration:
    - True: JSON codec, stored under key_prefix + name
    - FieldOptions(...) or {"serialize": f, "deserialize": g, "mutation": m}
    - None / False: not tracked

    Fields and the storage backend are resolved here, once. The returned
    function hydrates the store, starts write-back and returns the
    `AttachedInstance`; pass it in `Store(plugins=[...])`.

    Example
        plugin = create_storage_plugin({"count": True}, {"key_prefix": "app-"})
        store = Store(state={"count": 0}, mutations=..., plugins=[plugin])
    """
    if options is None:
        config = EngineConfiguration()
    elif isinstance(options, EngineConfiguration):
        config = options
    else:
        config = EngineConfiguration.model_validate(dict(options))

    specs = resolve_fields(state_map, config.key_prefix)
    storage = config.resolve_storage()

    def attach(store: Store) -> AttachedInstance:
        hydrate(specs, storage, store)
        subscription = attach_persistence(specs, storage, store, config.strategy)
        logger.debug(
            "attached %d field(s) with %s strategy",
            len(specs),
            config.strategy.value,
        )
        return AttachedInstance(
            config=config,
            specs=specs,
            storage=storage,
            store=store,
            subscription=subscription,
        )

    return attach
