from __future__ import annotations

import json

import pytest

from counter import handler as counter
from storage import FileStorage, MemoryStorage, default_storage


def test_count_survives_restarts(tmp_path):
    path = tmp_path / "counter.json"

    assert counter.run_once(storage=FileStorage(path))["count"] == 1
    assert counter.run_once(storage=FileStorage(path))["count"] == 2

    result = counter.run_once("show", storage=FileStorage(path))
    assert result == {"ok": True, "count": 2, "history": 2}

    stored = FileStorage(path)
    assert stored.get("count") == "2"
    assert [e["n"] for e in json.loads(stored.get("history"))] == [1, 2]


def test_reset_clears_count_and_history():
    storage = MemoryStorage()
    counter.run_once(storage=storage)
    counter.run_once(storage=storage)

    result = counter.run_once("reset", storage=storage)

    assert result["count"] == 0
    assert storage.get("count") == "0"
    assert storage.get("history") == "[]"


def test_history_is_capped():
    storage = MemoryStorage()
    store = counter.build_store(storage)
    for _ in range(counter.HISTORY_LIMIT + 5):
        store.dispatch("increment")

    history = json.loads(storage.get("history"))
    assert len(history) == counter.HISTORY_LIMIT
    assert history[-1]["n"] == counter.HISTORY_LIMIT + 5


def test_key_prefix_from_env(monkeypatch):
    monkeypatch.setenv("STATESYNC_KEY_PREFIX", "counter:")
    storage = MemoryStorage()

    counter.run_once(storage=storage)

    assert storage.get("counter:count") == "1"
    assert storage.get("count") is None


def test_unknown_action_raises():
    with pytest.raises(ValueError):
        counter.run_once("explode", storage=MemoryStorage())


def test_main_uses_default_storage(capsys):
    assert counter.main(["increment"]) == 0
    assert counter.main([]) == 0

    assert capsys.readouterr().out.split() == ["1", "2"]
    assert default_storage().get("count") == "2"
