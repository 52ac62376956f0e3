"""Shared contracts: types, enums, errors and the Document/Answer/Label schema.

Leaf package for everything that crosses subsystem boundaries.
"""

from needle.contracts.enums import (
    AnswerType,
    ContentType,
    JoinMode,
    RootType,
    SplitBy,
)
from needle.contracts.errors import (
    ExecutionError,
    InvalidBranchError,
    NeedleError,
    NodeError,
    NodeExecutionError,
    PipelineConfigError,
    PipelineError,
)
from needle.contracts.schema import Answer, Document, Label
from needle.contracts.types import BranchLabel, NodeName, NodeResult, Payload

__all__ = [
    "Answer",
    "AnswerType",
    "BranchLabel",
    "ContentType",
    "Document",
    "ExecutionError",
    "InvalidBranchError",
    "JoinMode",
    "Label",
    "NeedleError",
    "NodeError",
    "NodeExecutionError",
    "NodeName",
    "NodeResult",
    "Payload",
    "PipelineConfigError",
    "PipelineError",
    "RootType",
    "SplitBy",
]
