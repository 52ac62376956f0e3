# src/needle/core/__init__.py
"""Core infrastructure: Canonical hashing, Configuration, DAG, Logging."""

from needle.core.canonical import (
    canonical_json,
    stable_hash,
)
from needle.core.dag import (
    GraphValidationError,
    NodeInfo,
    PipelineGraph,
)
from needle.core.logging import (
    configure_logging,
    get_logger,
)

__all__ = [
    "GraphValidationError",
    "NodeInfo",
    "PipelineGraph",
    "canonical_json",
    "configure_logging",
    "get_logger",
    "stable_hash",
]
