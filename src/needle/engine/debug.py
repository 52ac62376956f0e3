# src/needle/engine/debug.py
"""Per-run debug trace aggregation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from needle.plugins.base import ComponentCall

# Payload keys left out of output snapshots
_SNAPSHOT_EXCLUDED = frozenset({"params"})


class DebugCollector:
    """Accumulates one trace entry per executed node with debug enabled.

    Created fresh for every pipeline invocation and discarded once the
    result is returned.

    Entry shape:
        {"input": {...call arguments..., "debug": True},
         "output": {...payload...},
         "runtime": <node-supplied _debug value, if any>}
    """

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, Any]] = {}

    def record(self, node_name: str, call: ComponentCall) -> None:
        if node_name in self._entries:
            raise ValueError(f"Node '{node_name}' already has a debug entry; nodes run at most once per invocation")
        entry: dict[str, Any] = {
            "input": {**call.inputs, "debug": True},
            "output": {k: v for k, v in call.output.items() if k not in _SNAPSHOT_EXCLUDED},
        }
        if call.runtime is not None:
            entry["runtime"] = call.runtime
        self._entries[node_name] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def as_dict(self) -> dict[str, dict[str, Any]]:
        return {name: dict(entry) for name, entry in self._entries.items()}
