from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.env import getenv
from storage import Storage, default_storage


ENV_KEY_PREFIX = "STATESYNC_KEY_PREFIX"
ENV_STRATEGY = "STATESYNC_STRATEGY"


class TriggerStrategy(str, Enum):
    """How the engine decides that a tracked field must be written.

    - WATCH: observe the field's value (deep, synchronous); any change by any
      mutation is persisted.
    - MUTATION: persist a field only after a committed mutation whose name
      equals the field's trigger.
    """

    WATCH = "watch"
    MUTATION = "mutation"


class EngineConfiguration(BaseModel):
    """
    Options accepted by `create_storage_plugin`.

    Fields
    - storage_implementation: backend to read from and write to. When None,
      the process-wide default storage is used, looked up when the plugin is
      created (not at import time).
    - key_prefix: prepended to every field name to build its storage key,
      e.g. "app-" stores field `count` under "app-count".
    - strategy: see `TriggerStrategy`; WATCH unless told otherwise.
    """

    model_config = ConfigDict(frozen=True)

    storage_implementation: Optional[Any] = Field(
        default=None,
        description="Storage backend; None means the process-wide default",
    )
    key_prefix: str = Field(default="", description="Prefix for every storage key")
    strategy: TriggerStrategy = Field(
        default=TriggerStrategy.WATCH,
        description="Persistence trigger strategy",
    )

    @field_validator("storage_implementation")
    @classmethod
    def _check_storage(cls, v: Any) -> Any:
        if v is not None and not isinstance(v, Storage):
            raise ValueError(
                f"{type(v).__name__} does not implement get/set/remove/clear/key/__len__"
            )
        return v

    @classmethod
    def from_env(cls, *, storage_implementation: Optional[Storage] = None) -> "EngineConfiguration":
        raw = (getenv(ENV_STRATEGY, TriggerStrategy.WATCH.value) or "").lower()
        try:
            strategy = TriggerStrategy(raw)
        except ValueError:
            raise RuntimeError(
                f"Unsupported {ENV_STRATEGY} value: {raw!r} (expected watch or mutation)"
            ) from None
        return cls(
            storage_implementation=storage_implementation,
            key_prefix=getenv(ENV_KEY_PREFIX, "") or "",
            strategy=strategy,
        )

    def resolve_storage(self) -> Storage:
        if self.storage_implementation is not None:
            return self.storage_implementation
        return default_storage()
