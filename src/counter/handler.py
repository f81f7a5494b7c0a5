from __future__ import annotations

import argparse
import logging
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Sequence

from persist import EngineConfiguration, FieldOptions, create_storage_plugin
from state import ActionContext, Store
from storage import Storage, storage_from_env


# Keep the last N increments; older entries are dropped
HISTORY_LIMIT = 20


def _initial_state() -> Dict[str, Any]:
    return {"count": 0, "history": []}


def _set_count(state: Dict[str, Any], value: int) -> None:
    state["count"] = value


def _record(state: Dict[str, Any], entry: Dict[str, Any]) -> None:
    history: List[Dict[str, Any]] = state["history"]
    history.append(entry)
    del history[:-HISTORY_LIMIT]


def _reset(state: Dict[str, Any]) -> None:
    state["count"] = 0
    state["history"].clear()


def _increment(ctx: ActionContext) -> int:
    n = ctx.state["count"] + 1
    ctx.commit("count", n)
    ctx.commit("record", {"n": n, "at": datetime.now(UTC).isoformat(timespec="seconds")})
    return n


def build_store(
    storage: Optional[Storage] = None,
    *,
    config: Optional[EngineConfiguration] = None,
) -> Store:
    """Counter store whose `count` and `history` survive restarts.

    `count` is stored as plain decimal text; `history` as JSON.
    """
    config = config or EngineConfiguration.from_env(storage_implementation=storage)
    plugin = create_storage_plugin(
        {
            "count": FieldOptions(serialize=str, deserialize=int),
            "history": True,
        },
        config,
    )
    return Store(
        state=_initial_state,
        mutations={"count": _set_count, "record": _record, "reset": _reset},
        actions={"increment": _increment},
        plugins=[plugin],
    )


def run_once(action: str = "increment", *, storage: Optional[Storage] = None) -> Dict[str, Any]:
    store = build_store(storage if storage is not None else storage_from_env())
    try:
        if action == "increment":
            store.dispatch("increment")
        elif action == "reset":
            store.commit("reset")
        elif action != "show":
            raise ValueError(f"unknown action: {action!r}")
        return {
            "ok": True,
            "count": store.state["count"],
            "history": len(store.state["history"]),
        }
    finally:
        store.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="counter", description="A counter that remembers its value.")
    parser.add_argument("action", nargs="?", default="increment", choices=["increment", "reset", "show"])
    parser.add_argument("-v", "--verbose", action="store_true", help="log storage reads and writes")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    result = run_once(args.action)
    print(result["count"])
    return 0
