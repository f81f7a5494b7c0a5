from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from .base import check_value


DEFAULT_STORAGE_DIR_ENV = "STATESYNC_STORAGE_DIR"
STORAGE_FILE_NAME = "storage.json"

logger = logging.getLogger(__name__)


def default_storage_file() -> Path:
    # Prefer explicit env var, else project-local .cache folder
    base = os.environ.get(DEFAULT_STORAGE_DIR_ENV)
    if base:
        return Path(base) / STORAGE_FILE_NAME
    return Path(".cache") / "statesync" / STORAGE_FILE_NAME


class FileStorage:
    """
    Durable storage kept in a single JSON object file: { key: value, ... }.

    - Loaded lazily on first access; a missing file is an empty storage.
    - Every `set`/`remove`/`clear` rewrites the file before returning, through
      a temporary sibling file and `os.replace`, so a crash mid-write leaves
      the previous contents intact.
    - Ordinals follow the key order of the file (first-insertion order).
    - A file that is not a JSON object of strings raises ValueError on first
      access; it is never silently reset.
    """

    def __init__(self, path: Optional[os.PathLike[str] | str] = None) -> None:
        self._path = Path(path) if path else default_storage_file()
        self._data: Dict[str, str] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        if self._path.exists():
            with self._path.open("r", encoding="utf-8") as f:
                try:
                    raw = json.load(f)
                except json.JSONDecodeError as ex:
                    raise ValueError(f"Failed to parse storage file {self._path}") from ex
            if not isinstance(raw, dict) or not all(isinstance(v, str) for v in raw.values()):
                raise ValueError(f"Storage file {self._path} is not a JSON object of strings")
            self._data = {str(k): v for k, v in raw.items()}
            logger.debug("loaded %d entries from %s", len(self._data), self._path)
        self._loaded = True

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(f"{self._path.name}.tmp-{os.getpid()}")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, self._path)

    # -------- Storage contract --------
    def get(self, key: str) -> Optional[str]:
        self._ensure_loaded()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        check_value(key, value)
        self._ensure_loaded()
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        self._ensure_loaded()
        if self._data.pop(key, None) is not None:
            self._save()

    def clear(self) -> None:
        self._ensure_loaded()
        self._data = {}
        self._save()

    def key(self, index: int) -> Optional[str]:
        self._ensure_loaded()
        if index < 0 or index >= len(self._data):
            return None
        return list(self._data)[index]

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._data)
