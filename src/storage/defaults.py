from __future__ import annotations

from typing import Optional

from common.env import getenv

from .base import Storage
from .file_store import FileStorage
from .memory import MemoryStorage


ENV_STORAGE = "STATESYNC_STORAGE"

_default: Optional[Storage] = None


def default_storage() -> Storage:
    """Return the process-wide durable storage, creating it on first use.

    The handle is resolved at call time rather than import time so tests can
    point `STATESYNC_STORAGE_DIR` elsewhere and call `reset_default_storage()`.
    """
    global _default
    if _default is None:
        _default = FileStorage()
    return _default


def reset_default_storage() -> None:
    global _default
    _default = None


def storage_from_env() -> Storage:
    """Build the backend named by STATESYNC_STORAGE (memory, file or s3)."""
    kind = (getenv(ENV_STORAGE, "file") or "file").lower()
    if kind == "memory":
        return MemoryStorage()
    if kind == "file":
        return default_storage()
    if kind == "s3":
        # boto3 is only needed when S3 is actually selected
        from .s3_store import S3Storage

        return S3Storage.from_env()
    raise RuntimeError(f"Unsupported {ENV_STORAGE} value: {kind!r} (expected memory, file or s3)")
