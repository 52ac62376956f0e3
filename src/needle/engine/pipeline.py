# src/needle/engine/pipeline.py
"""Pipeline: assemble nodes into a DAG and execute it.

Execution is sequential and single-threaded. A pending queue starts with
the root. The next node to run is the earliest queued node in topological
order; because it comes first, none of its ancestors is still queued, so
every predecessor on an active path has already delivered. Predecessors on
branches that were not selected never deliver and never block.

Construction logic for declarative descriptions lives in builder.py;
load_from_config()/load_from_yaml()/get_config() are thin facades.
"""

from __future__ import annotations

import copy
import traceback
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from needle.contracts import (
    Document,
    InvalidBranchError,
    Label,
    NodeExecutionError,
    Payload,
    PipelineConfigError,
    PipelineError,
    RootType,
)
from needle.contracts.types import NodeName
from needle.core.dag import OUTPUT_ALL, ROOT_NAMES, InputReference, NodeInfo, PipelineGraph, branch_index
from needle.core.logging import get_logger
from needle.engine.debug import DebugCollector
from needle.engine.root import RootNode
from needle.plugins.base import BaseComponent, ComponentCall, accepted_arguments

if TYPE_CHECKING:
    from needle.core.config import NeedleSettings
    from needle.plugins.manager import PluginManager

logger = get_logger(__name__)

# Branch tag for batch results that route different sub-payloads per branch
SPLIT = "split"

_JOIN_RESERVED = frozenset({"inputs", "params", "_debug"})

ComponentT = TypeVar("ComponentT", bound=BaseComponent)


def _check_component(name: str, component: object) -> None:
    if not isinstance(component, BaseComponent):
        raise PipelineConfigError(f"Node '{name}' must be a BaseComponent, got {type(component).__name__}")
    edges = component.outgoing_edges
    if isinstance(edges, bool) or not isinstance(edges, int) or edges < 1:
        raise PipelineConfigError(f"Component of node '{name}' must declare outgoing_edges >= 1, got {edges!r}")


def _join_payloads(arrived: list[Payload]) -> Payload:
    """Build the input of a node fed by several references.

    The node receives every arrived payload under ``inputs`` (arrival order);
    other keys are merged, first arrival wins.
    """
    merged: Payload = {}
    for payload in arrived:
        for key, value in payload.items():
            if key not in _JOIN_RESERVED:
                merged.setdefault(key, value)
    merged["inputs"] = list(arrived)
    merged["params"] = arrived[0].get("params", {})
    return merged


class Pipeline:
    """A directed acyclic graph of named nodes plus its executor.

    Usage:
        pipeline = Pipeline()
        pipeline.add_node(component=retriever, name="Retriever", inputs=["Query"])
        pipeline.add_node(component=docs2answers, name="Docs2Answers", inputs=["Retriever"])
        result = pipeline.run(query="What is needle?", params={"Retriever": {"top_k": 3}})
    """

    def __init__(self) -> None:
        self.graph = PipelineGraph()

    @property
    def root_node(self) -> str | None:
        """``"Query"``, ``"File"`` or None for an empty pipeline."""
        root = self.graph.root
        return root.value if root is not None else None

    @property
    def components(self) -> dict[str, BaseComponent]:
        """Node name to component, in insertion order, root excluded."""
        return {name: self.graph.get_node_info(name).component for name in self.graph.node_names() if name not in ROOT_NAMES}

    def add_node(self, component: BaseComponent, name: str, inputs: list[str]) -> None:
        """Add a node fed by ``inputs``.

        The first node must take the root (``"Query"`` or ``"File"``) as an
        input; the root is created implicitly.

        Raises:
            PipelineConfigError: On invalid components, names or inputs
        """
        _check_component(name, component)

        root_inputs = {ref.node for ref in map(InputReference.parse, inputs) if ref.node in ROOT_NAMES}
        if len(root_inputs) > 1:
            raise PipelineConfigError(f"Node '{name}' takes both roots {sorted(root_inputs)}; a pipeline has exactly one root.")
        new_root = bool(root_inputs) and self.graph.root is None
        if root_inputs:
            self.graph.add_root(RootType(root_inputs.pop()), RootNode())
        elif self.graph.root is None:
            raise PipelineConfigError(f"The first node added must take 'Query' or 'File' as input; node '{name}' takes {list(inputs)}.")

        try:
            self.graph.add_node(name, component, inputs)
        except PipelineConfigError:
            # A rejected first node leaves the pipeline empty
            if new_root:
                self.graph.remove_root()
            raise
        logger.debug("Added node", node=name, component=component.type, inputs=list(inputs))

    def get_node(self, name: str) -> BaseComponent | None:
        """Component of node ``name``, or None."""
        if not self.graph.has_node(name):
            return None
        return self.graph.get_node_info(name).component

    def set_node(self, name: str, component: BaseComponent) -> None:
        """Replace the component of an existing node, keeping its wiring.

        Raises:
            PipelineConfigError: If the node doesn't exist, the component is invalid, or it
                cannot serve the existing outgoing edges
        """
        if name in ROOT_NAMES or not self.graph.has_node(name):
            raise PipelineConfigError(f"No node named '{name}' in the pipeline")
        _check_component(name, component)
        self.graph.set_component(name, component)

    def get_nodes_by_class(self, class_type: type[ComponentT]) -> list[ComponentT]:
        """Components that are instances of ``class_type``."""
        return [c for c in self.components.values() if isinstance(c, class_type)]

    def run(
        self,
        query: str | None = None,
        file_paths: list[str | Path] | None = None,
        labels: list[Label] | None = None,
        documents: list[Document] | None = None,
        meta: dict[str, Any] | list[dict[str, Any]] | None = None,
        params: dict[str, Any] | None = None,
        debug: bool | None = None,
    ) -> Payload:
        """Run the pipeline once.

        Args:
            query: Query text for Query-rooted pipelines
            file_paths: Files for File-rooted pipelines
            labels: Ground-truth labels passed through to nodes accepting them
            documents: Documents to start from instead of retrieving them
            meta: Meta attached to converted files
            params: Node-targeted (``{"Retriever": {"top_k": 5}}``) or global
                (``{"top_k": 5}``) run arguments
            debug: Collect a per-node trace under ``"_debug"``

        Returns:
            The terminal node's payload

        Raises:
            PipelineError: On bad arguments, unknown params or an undeclared branch
            NodeExecutionError: If a node raises
        """
        arguments = {"query": query, "file_paths": file_paths, "labels": labels, "documents": documents, "meta": meta}
        return self._invoke(arguments, params=params, debug=debug, batch=False)

    def run_batch(
        self,
        queries: list[str] | None = None,
        file_paths: list[str | Path] | None = None,
        labels: list[Label] | list[list[Label]] | None = None,
        documents: list[Document] | list[list[Document]] | None = None,
        meta: dict[str, Any] | list[dict[str, Any]] | None = None,
        params: dict[str, Any] | None = None,
        debug: bool | None = None,
    ) -> Payload:
        """Run the pipeline over a batch through every node's ``run_batch``.

        Arguments mirror run(); ``queries`` replaces ``query``.
        """
        arguments = {"queries": queries, "file_paths": file_paths, "labels": labels, "documents": documents, "meta": meta}
        return self._invoke(arguments, params=params, debug=debug, batch=True)

    def _invoke(self, arguments: dict[str, Any], *, params: dict[str, Any] | None, debug: bool | None, batch: bool) -> Payload:
        root = self.graph.root
        if root is None:
            raise PipelineError("Pipeline has no nodes; add a node before running it.")
        primary = "queries" if batch else "query"
        if all(arguments[key] is None for key in (primary, "file_paths", "documents")):
            raise PipelineError(f"Must provide at least one of '{primary}', 'file_paths' or 'documents'.")
        if root == RootType.FILE and arguments["file_paths"] is None:
            raise PipelineError("This pipeline starts from 'File'; pass file_paths.")

        run_params = copy.deepcopy(params) if params else {}
        self._validate_params(run_params, batch=batch)
        if debug is not None:
            run_params["debug"] = debug

        payload: Payload = {key: value for key, value in arguments.items() if value is not None}
        payload["params"] = run_params
        return self._execute(NodeName(root.value), payload, batch=batch)

    def _validate_params(self, params: dict[str, Any], *, batch: bool) -> None:
        """Reject params that no node could consume, before anything runs."""
        components = self.components
        accepted_by_node = {name: accepted_arguments(c.run_batch if batch else c.run) for name, c in components.items()}

        for name, value in params.items():
            if name not in components:
                continue
            if not isinstance(value, dict):
                raise PipelineError(f"Params for node '{name}' must be a mapping, got {type(value).__name__}.")
            accepted = accepted_by_node[name]
            invalid = sorted(k for k in value if k != "debug" and accepted is not None and k not in accepted)
            if invalid:
                raise PipelineError(f"Invalid parameter(s) {invalid} for node '{name}'.")

        # Nodes taking **kwargs see payload keys only, never global params
        valid_global = {"debug"}.union(*(accepted for accepted in accepted_by_node.values() if accepted is not None))
        invalid_keys = sorted(key for key in params if key not in components and key not in valid_global)
        if invalid_keys:
            raise PipelineError(f"No node(s) or global parameter(s) named {', '.join(invalid_keys)} found in pipeline.")

    def _execute(self, root: NodeName, payload: Payload, *, batch: bool) -> Payload:
        order = {name: i for i, name in enumerate(self.graph.topological_order())}
        queue: dict[NodeName, list[Payload]] = {root: [payload]}
        collector = DebugCollector()
        result: Payload = {}
        executed = 0

        while queue:
            name = min(queue, key=order.__getitem__)
            arrived = queue.pop(name)
            info = self.graph.get_node_info(name)
            node_payload = arrived[0] if len(info.inputs) <= 1 else _join_payloads(arrived)

            log = logger.bind(node=name)
            log.debug("Running node", component=info.component.type, batch=batch)
            try:
                call = info.component.dispatch(name, node_payload, batch=batch)
            except PipelineError:
                raise
            except Exception as e:
                raise NodeExecutionError.from_exception(name, e, traceback=traceback.format_exc()) from e
            executed += 1

            self._check_branch(info, call, batch=batch)
            if call.debug:
                collector.record(name, call)

            routes = self._routes(name, call)
            log.debug("Node finished", branch=call.branch, next_nodes=[n for n, _ in routes])
            for next_name, next_payload in routes:
                queue.setdefault(next_name, []).append(next_payload)
            result = call.output

        logger.debug("Pipeline finished", nodes_executed=executed, batch=batch)
        if len(collector):
            result = {**result, "_debug": collector.as_dict()}
        return result

    @staticmethod
    def _check_branch(info: NodeInfo, call: ComponentCall, *, batch: bool) -> None:
        declared = info.outgoing_edges
        if call.branch == OUTPUT_ALL:
            return
        if call.branch == SPLIT:
            if not batch:
                raise InvalidBranchError(info.name, call.branch, declared)
            for key, value in call.output.items():
                index = branch_index(key)
                if index is None:
                    continue
                if index > declared:
                    raise InvalidBranchError(info.name, key, declared)
                if not isinstance(value, dict):
                    raise PipelineError(f"Node '{info.name}' split output '{key}' must be a mapping, got {type(value).__name__}.")
            return
        index = branch_index(call.branch)
        if index is None or index > declared:
            raise InvalidBranchError(info.name, call.branch, declared)

    def _routes(self, name: NodeName, call: ComponentCall) -> list[tuple[NodeName, Payload]]:
        """Destinations and the payload each one receives."""
        if call.branch != SPLIT:
            return [(next_name, call.output) for next_name in self.graph.get_next_nodes(name, call.branch)]

        shared = {k: v for k, v in call.output.items() if branch_index(k) is None}
        routes: list[tuple[NodeName, Payload]] = []
        for key, sub_payload in call.output.items():
            if branch_index(key) is None:
                continue
            for next_name in self.graph.get_next_nodes(name, key):
                routes.append((next_name, {**shared, **sub_payload, "params": shared["params"]}))
        return routes

    def get_config(self, pipeline_name: str = "query") -> dict[str, Any]:
        """Declarative description of this pipeline (see needle.core.config)."""
        from needle.engine.builder import export_settings

        return export_settings(self, pipeline_name).model_dump(mode="json")

    def save_to_yaml(self, path: Path, pipeline_name: str = "query") -> None:
        """Write get_config() as YAML."""
        from needle.core.config import dump_settings
        from needle.engine.builder import export_settings

        dump_settings(export_settings(self, pipeline_name), path)

    @classmethod
    def load_from_config(
        cls,
        config: dict[str, Any] | NeedleSettings,
        pipeline_name: str | None = None,
        plugin_manager: PluginManager | None = None,
    ) -> Pipeline:
        """Build a pipeline from a declarative description.

        Raises:
            PipelineConfigError: If the description is invalid
        """
        from needle.engine.builder import build_pipeline, parse_settings

        settings = parse_settings(config)
        return build_pipeline(settings, pipeline_name=pipeline_name, plugin_manager=plugin_manager)

    @classmethod
    def load_from_yaml(
        cls,
        path: Path,
        pipeline_name: str | None = None,
        plugin_manager: PluginManager | None = None,
    ) -> Pipeline:
        """Build a pipeline from a YAML file (NEEDLE_* env vars override).

        Raises:
            FileNotFoundError: If the file doesn't exist
            PipelineConfigError: If the description is invalid
        """
        from needle.engine.builder import build_pipeline, load_settings_file

        settings = load_settings_file(Path(path))
        return build_pipeline(settings, pipeline_name=pipeline_name, plugin_manager=plugin_manager)
