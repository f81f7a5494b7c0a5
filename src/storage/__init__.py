"""
Durable string-keyed storage backends.

All backends implement the `Storage` protocol (get/set/remove/clear/key/len)
and are interchangeable:
- MemoryStorage: insertion-ordered in-memory mapping (tests, ephemeral hosts)
- FileStorage:   single JSON file on disk; the process-wide default
- S3Storage:     one S3 object per key, Fernet-encrypted at rest
"""

from .base import Storage
from .defaults import default_storage, reset_default_storage, storage_from_env
from .file_store import FileStorage
from .memory import MemoryStorage

__all__ = [
    "Storage",
    "MemoryStorage",
    "FileStorage",
    "default_storage",
    "reset_default_storage",
    "storage_from_env",
]
