from __future__ import annotations

import json
from typing import Any


def encode(value: Any) -> str:
    """Encode a state value as compact JSON text.

    Key order is preserved (no sorting) so the stored text mirrors the
    in-memory structure. Raises TypeError for values JSON cannot represent.
    """
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def decode(text: str) -> Any:
    """Decode JSON text produced by `encode`.

    Raises json.JSONDecodeError (a ValueError) for malformed text.
    """
    return json.loads(text)
