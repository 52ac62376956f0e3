"""Semantic type aliases for compile-time type safety.

NewType creates distinct types that mypy treats as incompatible,
preventing accidental misuse of semantically different string values.
"""

from typing import Any, NewType, TypeAlias

NodeName = NewType("NodeName", str)
"""User-defined node name, unique within a pipeline (e.g., 'Retriever')"""

BranchLabel = NewType("BranchLabel", str)
"""Output branch tag selected by a node (e.g., 'output_1')"""

Payload: TypeAlias = dict[str, Any]
"""Named output payload produced by a node and routed along its edges."""

NodeResult: TypeAlias = tuple[Payload, str]
"""What every node run returns: payload plus the selected branch tag."""
