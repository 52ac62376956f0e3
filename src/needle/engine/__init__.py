# src/needle/engine/__init__.py
"""Pipeline engine: graph execution, debug tracing, declarative building."""

from needle.engine.debug import DebugCollector
from needle.engine.pipeline import SPLIT, Pipeline
from needle.engine.root import RootNode

__all__ = [
    "SPLIT",
    "DebugCollector",
    "Pipeline",
    "RootNode",
]
