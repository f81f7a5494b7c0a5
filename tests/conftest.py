import os
import sys

import pytest


def pytest_configure():
    # Ensure `src/` is importable as top-level for `persist.*`, `state.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


@pytest.fixture(autouse=True)
def isolated_default_storage(tmp_path, monkeypatch):
    # Every test gets its own process-wide default storage file
    from storage import reset_default_storage

    for name in ("STATESYNC_KEY_PREFIX", "STATESYNC_STRATEGY", "STATESYNC_STORAGE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STATESYNC_STORAGE_DIR", str(tmp_path / "default-storage"))
    reset_default_storage()
    yield
    reset_default_storage()


@pytest.fixture
def memory_storage():
    from storage import MemoryStorage

    return MemoryStorage()
