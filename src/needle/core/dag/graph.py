# src/needle/core/dag/graph.py
"""PipelineGraph: node/edge storage, validation and traversal.

Wraps a NetworkX MultiDiGraph. Edges are keyed by branch label so one
node may feed the same destination from several of its branches.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

import networkx as nx
from networkx import MultiDiGraph

from needle.contracts.enums import RootType
from needle.contracts.types import NodeName
from needle.core.dag.models import (
    OUTPUT_ALL,
    ROOT_NAMES,
    GraphValidationError,
    InputReference,
    NodeInfo,
    _suggest_similar,
    branch_index,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from needle.plugins.base import BaseComponent


class PipelineGraph:
    """Directed acyclic graph of named pipeline nodes.

    Nodes are added with their upstream references; an edge is created for
    every reference. Because a node can only reference nodes that already
    exist, graphs built through add_node() are acyclic by construction.
    validate() still checks, for graphs assembled edge by edge.
    """

    def __init__(self) -> None:
        self._graph: MultiDiGraph[str] = nx.MultiDiGraph()

    @property
    def node_count(self) -> int:
        """Number of nodes in the graph, root included."""
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        """Number of edges in the graph."""
        return self._graph.number_of_edges()

    def has_node(self, name: str) -> bool:
        """Check if node exists."""
        return self._graph.has_node(name)

    @property
    def root(self) -> RootType | None:
        """The graph's root kind, or None while the graph is empty."""
        for name in ROOT_NAMES:
            if self._graph.has_node(name) and self.get_node_info(name).is_root:
                return RootType(name)
        return None

    def add_root(self, root: RootType, component: BaseComponent) -> None:
        """Add the synthetic root node.

        Raises:
            GraphValidationError: If a root already exists
        """
        existing = self.root
        if existing is not None:
            if existing == root:
                return
            raise GraphValidationError(f"Pipeline already has root '{existing}'; cannot add root '{root}'. A pipeline has exactly one root.")
        self._graph.add_node(root.value, info=NodeInfo(name=NodeName(root.value), component=component, inputs=()))

    def remove_root(self) -> None:
        """Drop a root that nothing consumes yet.

        Raises:
            GraphValidationError: If no root exists or nodes already read from it
        """
        root = self.root
        if root is None:
            raise GraphValidationError("Pipeline has no root to remove.")
        if self._graph.out_degree(root.value):
            raise GraphValidationError(f"Root '{root}' still feeds other nodes and cannot be removed.")
        self._graph.remove_node(root.value)

    def add_node(self, name: str, component: BaseComponent, inputs: Sequence[str]) -> NodeInfo:
        """Add a node and one edge per input reference.

        Args:
            name: Unique node name
            component: The node's behavior
            inputs: References such as ``"Query"``, ``"Retriever"`` or
                ``"Classifier.output_2"``

        Raises:
            GraphValidationError: On duplicate/reserved names, empty or unknown
                inputs, or a branch index the source node never declared
        """
        if name in ROOT_NAMES:
            raise GraphValidationError(f"'{name}' is reserved for the pipeline root and cannot name a node.")
        if self._graph.has_node(name):
            raise GraphValidationError(f"Node '{name}' already exists. Node names must be unique within a pipeline.")
        if not inputs:
            raise GraphValidationError(f"Node '{name}' declares no inputs.")

        references = tuple(InputReference.parse(ref) for ref in inputs)
        for ref in references:
            self._check_reference(name, ref)

        info = NodeInfo(name=NodeName(name), component=component, inputs=references)
        self._graph.add_node(name, info=info)
        for ref in references:
            self.add_edge(ref.node, name, label=ref.branch)
        return info

    def _check_reference(self, name: str, ref: InputReference) -> None:
        if not self._graph.has_node(ref.node):
            candidates = sorted(self._graph.nodes())
            suggestions = _suggest_similar(ref.node, candidates)
            hint = f" Did you mean: {', '.join(suggestions)}?" if suggestions else ""
            raise GraphValidationError(
                f"Node '{name}' references unknown input '{ref.node}'.{hint}\nAvailable nodes: {', '.join(candidates) or '<none>'}"
            )
        declared = self.get_node_info(ref.node).outgoing_edges
        index = branch_index(ref.branch)
        if index is None or index > declared:
            raise GraphValidationError(f"Node '{name}' references '{ref}', but '{ref.node}' declares only {declared} outgoing edge(s).")

    def add_edge(self, from_node: str, to_node: str, *, label: str) -> None:
        """Add an edge between existing nodes.

        Args:
            from_node: Source node name
            to_node: Destination node name
            label: Branch label, also used as the edge key
        """
        self._graph.add_edge(from_node, to_node, key=label, label=label)

    def set_component(self, name: str, component: BaseComponent) -> None:
        """Swap a node's component, keeping its wiring.

        Raises:
            KeyError: If the node doesn't exist
            GraphValidationError: If the new component declares fewer outgoing
                edges than existing downstream references use
        """
        info = self.get_node_info(name)
        for _, to_node, label in self._graph.out_edges(name, keys=True):
            index = branch_index(label)
            if index is not None and index > component.outgoing_edges:
                raise GraphValidationError(
                    f"Cannot replace '{name}': '{to_node}' consumes {label} but the new component declares "
                    f"only {component.outgoing_edges} outgoing edge(s)."
                )
        self._graph.nodes[name]["info"] = NodeInfo(name=info.name, component=component, inputs=info.inputs)

    def is_acyclic(self) -> bool:
        """Check if the graph is acyclic (a valid DAG)."""
        return nx.is_directed_acyclic_graph(self._graph)

    def validate(self) -> None:
        """Validate the graph structure.

        Validates:
        1. Graph is acyclic
        2. Exactly one root exists and it has no predecessors
        3. Every node is reachable from the root
        4. Every edge label is a branch the source node declared

        Raises:
            GraphValidationError: If validation fails
        """
        if not self.is_acyclic():
            try:
                cycle = nx.find_cycle(self._graph)
                cycle_str = " -> ".join(f"{edge[0]}" for edge in cycle)
                raise GraphValidationError(f"Graph contains a cycle: {cycle_str}")
            except nx.NetworkXNoCycle:
                raise GraphValidationError("Graph contains a cycle") from None

        roots = [name for name in ROOT_NAMES if self._graph.has_node(name)]
        if len(roots) != 1:
            raise GraphValidationError(f"Graph must have exactly one root (Query or File), found {len(roots)}")
        root = roots[0]
        if self._graph.in_degree(root) != 0:
            raise GraphValidationError(f"Root '{root}' must not have predecessors")

        reachable = nx.descendants(self._graph, root)
        reachable.add(root)
        unreachable = set(self._graph.nodes()) - reachable
        if unreachable:
            raise GraphValidationError(
                f"Graph validation failed: {len(unreachable)} unreachable node(s) detected: "
                f"{', '.join(sorted(unreachable))}. All nodes must be reachable from '{root}'."
            )

        for from_node, to_node, label in self._graph.edges(keys=True):
            index = branch_index(label)
            declared = self.get_node_info(from_node).outgoing_edges
            if index is None or index > declared:
                raise GraphValidationError(f"Edge {from_node} -> {to_node} uses '{label}', but '{from_node}' declares {declared} outgoing edge(s).")

    def topological_order(self) -> list[NodeName]:
        """Return node names in a topological order.

        Ties between independent nodes are broken by insertion order, so the
        order is deterministic for a given graph.

        Raises:
            GraphValidationError: If graph has cycles
        """
        insertion = {name: i for i, name in enumerate(self._graph.nodes())}
        try:
            return [NodeName(n) for n in nx.lexicographical_topological_sort(self._graph, key=insertion.__getitem__)]
        except nx.NetworkXUnfeasible as e:
            raise GraphValidationError(f"Cannot sort graph: {e}") from e

    def get_node_info(self, name: str) -> NodeInfo:
        """Get NodeInfo for a node.

        Raises:
            KeyError: If node doesn't exist
        """
        if not self._graph.has_node(name):
            raise KeyError(f"Node not found: {name}")
        return cast(NodeInfo, self._graph.nodes[name]["info"])

    def node_names(self) -> list[NodeName]:
        """All node names in insertion order, root first."""
        return [NodeName(n) for n in self._graph.nodes()]

    def get_next_nodes(self, name: str, branch: str) -> list[NodeName]:
        """Destinations of the edges leaving ``name`` on ``branch``.

        ``output_all`` follows every outgoing edge. A destination reached by
        more than one matching edge is listed once.
        """
        next_nodes: list[NodeName] = []
        for _, to_node, label in self._graph.out_edges(name, keys=True):
            if branch != OUTPUT_ALL and label != branch:
                continue
            if to_node not in next_nodes:
                next_nodes.append(NodeName(to_node))
        return next_nodes
