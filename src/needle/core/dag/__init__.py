# src/needle/core/dag/__init__.py
"""DAG (Directed Acyclic Graph) storage and traversal for pipelines."""

from needle.core.dag.graph import PipelineGraph
from needle.core.dag.models import (
    OUTPUT_ALL,
    ROOT_NAMES,
    GraphValidationError,
    InputReference,
    NodeInfo,
    branch_index,
    branch_label,
)

__all__ = [
    "OUTPUT_ALL",
    "ROOT_NAMES",
    "GraphValidationError",
    "InputReference",
    "NodeInfo",
    "PipelineGraph",
    "branch_index",
    "branch_label",
]
