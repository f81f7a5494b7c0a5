"""
Field-level synchronization between a `state.Store` and a storage backend.

`create_storage_plugin(state_map, options)` returns a store plugin that, when
attached, loads the declared fields from storage (hydration) and then writes
each of them back whenever it changes (write-back).
"""

from .config import EngineConfiguration, TriggerStrategy
from .fields import FieldMode, FieldOptions, FieldSpecification, resolve_field, resolve_fields
from .plugin import AttachedInstance, Subscription, attach_persistence, create_storage_plugin, hydrate

__all__ = [
    "create_storage_plugin",
    "EngineConfiguration",
    "TriggerStrategy",
    "FieldMode",
    "FieldOptions",
    "FieldSpecification",
    "resolve_field",
    "resolve_fields",
    "hydrate",
    "attach_persistence",
    "AttachedInstance",
    "Subscription",
]
