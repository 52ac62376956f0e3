# src/needle/core/dag/models.py
"""Types, constants, and exceptions for DAG operations.

Leaf module: only imports contracts submodules (prevents import cycles).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from needle.contracts.enums import RootType
from needle.contracts.errors import PipelineConfigError
from needle.contracts.types import BranchLabel, NodeName

if TYPE_CHECKING:
    from needle.plugins.base import BaseComponent


class GraphValidationError(PipelineConfigError, ValueError):
    """Raised when graph validation fails."""

    pass


# Branch tag that routes a payload along every outgoing edge
OUTPUT_ALL = BranchLabel("output_all")

ROOT_NAMES: frozenset[str] = frozenset(r.value for r in RootType)

_BRANCH_RE = re.compile(r"^output_([1-9][0-9]*)$")


def branch_label(index: int) -> BranchLabel:
    """Tag for the 1-based output branch ``index``."""
    if index < 1:
        raise GraphValidationError(f"Branch indices start at 1, got {index}")
    return BranchLabel(f"output_{index}")


def branch_index(label: str) -> int | None:
    """Inverse of branch_label; None for anything that is not ``output_<n>``."""
    match = _BRANCH_RE.match(label)
    return int(match.group(1)) if match else None


@dataclass(frozen=True, slots=True)
class InputReference:
    """One upstream edge as written in a node's inputs list.

    ``"Retriever"`` means ``Retriever.output_1``.
    """

    node: NodeName
    branch: BranchLabel

    @classmethod
    def parse(cls, reference: str) -> InputReference:
        """Parse ``"Node"`` or ``"Node.output_k"``."""
        name, sep, suffix = reference.rpartition(".")
        if sep and branch_index(suffix) is not None:
            return cls(node=NodeName(name), branch=BranchLabel(suffix))
        if sep and suffix.startswith("output"):
            raise GraphValidationError(f"Invalid branch in input reference '{reference}'. Use '<node>.output_<n>' with n >= 1.")
        return cls(node=NodeName(reference), branch=branch_label(1))

    def __str__(self) -> str:
        return f"{self.node}.{self.branch}"


@dataclass(frozen=True, slots=True)
class NodeInfo:
    """A node in the pipeline graph.

    ``inputs`` preserves the order the node's upstream references were
    declared in; join nodes see predecessor payloads in arrival order,
    not in this order.
    """

    name: NodeName
    component: BaseComponent
    inputs: tuple[InputReference, ...]

    @property
    def outgoing_edges(self) -> int:
        return self.component.outgoing_edges

    @property
    def is_root(self) -> bool:
        return self.name in ROOT_NAMES and not self.inputs


def _suggest_similar(name: str, candidates: list[str]) -> list[str]:
    """Suggest similar names for wiring validation errors."""
    import difflib

    return difflib.get_close_matches(name, candidates, n=3, cutoff=0.6)
