"""Exception hierarchy and error payload schemas.

Pipelines never swallow node failures. A node that raises aborts the walk
and the caller receives NodeExecutionError chained to the original error.
"""

from typing import Any, NotRequired, TypedDict


class ExecutionError(TypedDict):
    """Schema for node failure details attached to NodeExecutionError."""

    exception: str  # String representation of the exception
    type: str  # Exception class name (e.g., "ValueError")
    traceback: NotRequired[str]


class NeedleError(Exception):
    """Base class for all errors raised by needle."""

    pass


class NodeError(NeedleError):
    """Raised by a node when its inputs are unusable.

    Built-in nodes raise this for things like mixed file types or a missing
    document store. The pipeline wraps it in NodeExecutionError.
    """

    pass


class PipelineConfigError(NeedleError):
    """Raised when a pipeline or its declarative description is invalid."""

    pass


class PipelineError(NeedleError):
    """Raised when a pipeline is invoked incorrectly or fails at runtime."""

    pass


class InvalidBranchError(PipelineError):
    """Raised when a node selects an output branch it never declared.

    Attributes:
        node_name: Node that returned the branch tag
        branch: The offending tag
        outgoing_edges: Number of branches the node declared
    """

    def __init__(self, node_name: str, branch: str, outgoing_edges: int) -> None:
        self.node_name = node_name
        self.branch = branch
        self.outgoing_edges = outgoing_edges
        valid = ", ".join(f"output_{i}" for i in range(1, outgoing_edges + 1))
        super().__init__(f"Node '{node_name}' selected undeclared branch '{branch}'. Declared branches: {valid} (or output_all).")


class NodeExecutionError(PipelineError):
    """Raised when a node fails during a pipeline run.

    The original exception is always available as ``__cause__``.

    Attributes:
        node_name: Node that raised
        error: Structured description of the failure
    """

    def __init__(self, node_name: str, error: ExecutionError) -> None:
        self.node_name = node_name
        self.error = error
        super().__init__(f"Exception while running node '{node_name}': {error['type']}: {error['exception']}")

    @classmethod
    def from_exception(cls, node_name: str, exc: BaseException, *, traceback: str | None = None) -> "NodeExecutionError":
        """Build from a caught exception."""
        error: ExecutionError = {"exception": str(exc), "type": type(exc).__name__}
        if traceback is not None:
            error["traceback"] = traceback
        return cls(node_name, error)


def describe_params(params: dict[str, Any]) -> str:
    """Render parameter keys for error messages."""
    return ", ".join(sorted(params)) or "<none>"
