from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from common import codec


Serializer = Callable[[Any], str]
Deserializer = Callable[[str], Any]


class FieldMode(str, Enum):
    DEFAULT = "default"
    CUSTOM = "custom"


class FieldOptions(BaseModel):
    """
    Per-field declaration for fields that need more than the JSON codec.

    - serialize(value) -> str: receives the field's new value.
    - deserialize(text) -> value: receives the stored string.
    - mutation: name of the mutation that triggers a write under the
      MUTATION strategy (defaults to the field name).
    A missing direction falls back to the JSON codec.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    serialize: Optional[Serializer] = None
    deserialize: Optional[Deserializer] = None
    mutation: Optional[str] = None


class FieldSpecification(BaseModel):
    """Resolved, immutable description of one tracked field."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="State field name")
    storage_key: str = Field(description="key_prefix + key")
    mode: FieldMode = FieldMode.DEFAULT
    serialize: Serializer = codec.encode
    deserialize: Deserializer = codec.decode
    trigger: str = Field(description="Mutation name that triggers a write")


FieldDeclaration = Union[bool, FieldOptions, Mapping[str, Any], None]
StateMap = Mapping[str, FieldDeclaration]


def _option(declaration: Any, name: str) -> Any:
    if isinstance(declaration, Mapping):
        return declaration.get(name)
    return getattr(declaration, name, None)


def resolve_field(key: str, declaration: FieldDeclaration, key_prefix: str = "") -> Optional[FieldSpecification]:
    """Normalize one declaration; returns None for fields that are not tracked.

    `None` and `False` mean "not tracked". `True` (or any other value without
    codec options) selects the JSON codec. Options that are not callables, or
    a `mutation` that is not a string, are ignored rather than rejected.
    """
    if declaration is None or declaration is False:
        return None

    serialize = _option(declaration, "serialize")
    deserialize = _option(declaration, "deserialize")
    mutation = _option(declaration, "mutation")

    custom: Dict[str, Any] = {}
    if callable(serialize):
        custom["serialize"] = serialize
    if callable(deserialize):
        custom["deserialize"] = deserialize

    return FieldSpecification(
        key=key,
        storage_key=f"{key_prefix}{key}",
        mode=FieldMode.CUSTOM if custom else FieldMode.DEFAULT,
        trigger=mutation if isinstance(mutation, str) and mutation else key,
        **custom,
    )


def resolve_fields(state_map: StateMap, key_prefix: str = "") -> Tuple[FieldSpecification, ...]:
    specs = []
    for key, declaration in state_map.items():
        spec = resolve_field(key, declaration, key_prefix)
        if spec is not None:
            specs.append(spec)
    return tuple(specs)
