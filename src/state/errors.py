from __future__ import annotations


class StoreError(RuntimeError):
    """Base error for the state container."""


class UnknownMutationError(StoreError):
    """`commit` was called with a mutation name the store does not define."""

    def __init__(self, mutation_type: str) -> None:
        super().__init__(f"unknown mutation type: {mutation_type!r}")
        self.mutation_type = mutation_type


class UnknownActionError(StoreError):
    """`dispatch` was called with an action name the store does not define."""

    def __init__(self, action_type: str) -> None:
        super().__init__(f"unknown action type: {action_type!r}")
        self.action_type = action_type


class StrictModeViolation(StoreError):
    """State was modified outside a mutation handler while strict mode is on."""
