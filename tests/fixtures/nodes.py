# tests/fixtures/nodes.py
"""Small pipeline nodes with observable behavior, for engine tests."""

from __future__ import annotations

from typing import Any

from needle.contracts import NodeResult, Payload
from needle.plugins.base import BaseComponent
from needle.plugins.hookspecs import hookimpl


class AppendNode(BaseComponent):
    """Append ``label`` to the ``trail`` list it receives."""

    def __init__(self, label: str) -> None:
        self.label = label

    def run(self, trail: list[str] | None = None) -> NodeResult:
        return {"trail": [*(trail or []), self.label]}, "output_1"

    def run_batch(self, trail: list[str] | None = None) -> NodeResult:
        return self.run(trail=trail)


class FixedBranch(BaseComponent):
    """Always select ``branch``; declares ``outgoing_edges`` branches."""

    def __init__(self, branch: str = "output_1", outgoing_edges: int = 2) -> None:
        self.branch = branch
        self.outgoing_edges = outgoing_edges

    def run(self) -> NodeResult:
        return {}, self.branch

    def run_batch(self) -> NodeResult:
        return {}, self.branch


class FailingNode(BaseComponent):
    """Raise ``RuntimeError`` on every call."""

    def __init__(self, message: str = "boom") -> None:
        self.message = message

    def run(self) -> NodeResult:
        raise RuntimeError(self.message)

    def run_batch(self) -> NodeResult:
        raise RuntimeError(self.message)


class TrailJoin(BaseComponent):
    """Collect the ``trail`` of every joined input."""

    def run(self, inputs: list[Payload]) -> NodeResult:
        return {"trails": [payload.get("trail") for payload in inputs]}, "output_1"

    def run_batch(self, inputs: list[Payload]) -> NodeResult:
        return self.run(inputs=inputs)


class EchoParams(BaseComponent):
    """Report the options it was called with."""

    def run(self, query: str, top_k: int = 10, scale: float = 1.0) -> NodeResult:
        return {"seen": {"query": query, "top_k": top_k, "scale": scale}}, "output_1"

    def run_batch(self, queries: list[str], top_k: int = 10, scale: float = 1.0) -> NodeResult:
        return {"seen": {"queries": queries, "top_k": top_k, "scale": scale}}, "output_1"


class KwargsNode(BaseComponent):
    """Accept anything; report which keys arrived."""

    def run(self, **kwargs: Any) -> NodeResult:
        return {"seen_keys": sorted(kwargs)}, "output_1"

    def run_batch(self, **kwargs: Any) -> NodeResult:
        return self.run(**kwargs)


class RuntimeDebugNode(BaseComponent):
    """Attach custom debug information to its output."""

    def run(self, query: str) -> NodeResult:
        return {"length": len(query), "_debug": {"chars": list(query)}}, "output_1"

    def run_batch(self, queries: list[str]) -> NodeResult:
        return {"lengths": [len(q) for q in queries]}, "output_1"


class BadResultNode(BaseComponent):
    """Return something other than a (dict, str) tuple."""

    def run(self) -> NodeResult:
        return ["not", "a", "tuple"]  # type: ignore[return-value]

    def run_batch(self) -> NodeResult:
        return self.run()


class CountingNode(BaseComponent):
    """Count invocations (for tests that inspect execution)."""

    def __init__(self) -> None:
        self.calls = 0

    def run(self) -> NodeResult:
        self.calls += 1
        return {}, "output_1"

    def run_batch(self) -> NodeResult:
        return self.run()


class TestNodesPlugin:
    """Registers the declarative-friendly test nodes."""

    __test__ = False

    @hookimpl
    def needle_get_components(self) -> list[type[Any]]:
        return [AppendNode, FixedBranch, TrailJoin]
