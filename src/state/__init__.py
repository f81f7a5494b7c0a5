"""
Reactive state container consumed by the persistence engine.

`Store` holds a dict of application state, changes it through named
mutations (`commit`) and actions (`dispatch`), and lets observers follow
those changes via `subscribe` (mutation stream) and `watch` (value changes,
optionally deep and synchronous).
"""

from .errors import StoreError, StrictModeViolation, UnknownActionError, UnknownMutationError
from .models import ActionContext, MutationRecord
from .store import FLUSH_POST, FLUSH_SYNC, Store

__all__ = [
    "Store",
    "ActionContext",
    "MutationRecord",
    "FLUSH_SYNC",
    "FLUSH_POST",
    "StoreError",
    "UnknownMutationError",
    "UnknownActionError",
    "StrictModeViolation",
]
