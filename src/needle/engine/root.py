# src/needle/engine/root.py
"""The synthetic root every pipeline starts from."""

from needle.contracts import NodeResult
from needle.plugins.base import BaseComponent


class RootNode(BaseComponent):
    """Entry point of a pipeline (``Query`` or ``File``).

    Produces nothing itself: the invocation arguments are carried forward
    to the first real nodes.
    """

    outgoing_edges = 1

    def run(self) -> NodeResult:
        return {}, "output_1"

    def run_batch(self) -> NodeResult:
        return {}, "output_1"
