# src/needle/plugins/joins/base.py
"""Base class for nodes that merge the payloads of several predecessors."""

from __future__ import annotations

from abc import abstractmethod
from typing import Any

from needle.contracts import NodeError, NodeResult, Payload
from needle.plugins.base import BaseComponent


class JoinNode(BaseComponent):
    """A node fed by more than one input.

    The pipeline hands join nodes ``inputs``: the payloads of every
    predecessor that produced output, in arrival order.
    """

    outgoing_edges = 1

    def run(self, inputs: list[Payload], top_k_join: int | None = None) -> NodeResult:
        if not inputs:
            raise NodeError(f"{self.type} received no inputs")
        return self.run_accumulated(inputs, top_k_join=top_k_join)

    def run_batch(self, inputs: list[Payload], top_k_join: int | None = None) -> NodeResult:
        if not inputs:
            raise NodeError(f"{self.type} received no inputs")
        return self.run_batch_accumulated(inputs, top_k_join=top_k_join)

    @abstractmethod
    def run_accumulated(self, inputs: list[Payload], top_k_join: int | None = None) -> NodeResult:
        """Join one invocation's inputs."""

    @abstractmethod
    def run_batch_accumulated(self, inputs: list[Payload], top_k_join: int | None = None) -> NodeResult:
        """Join batch inputs position by position."""

    @staticmethod
    def _weights(weights: list[float] | None, count: int) -> list[float]:
        if weights is None:
            return [1 / count] * count
        if len(weights) != count:
            raise NodeError(f"Got {len(weights)} weights for {count} inputs")
        return list(weights)

    @staticmethod
    def _collect(inputs: list[Payload], key: str) -> list[Any]:
        missing = [i for i, payload in enumerate(inputs) if key not in payload]
        if missing:
            raise NodeError(f"Join input(s) at position {missing} carry no '{key}'")
        return [payload[key] for payload in inputs]
