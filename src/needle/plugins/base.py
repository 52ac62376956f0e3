# src/needle/plugins/base.py
"""Base class for pipeline components (nodes).

Components MUST subclass BaseComponent. Plugin discovery uses issubclass()
checks against it, and __init_subclass__ records constructor arguments so
a pipeline can be exported back to its declarative description.

Run Contract:
    run(**inputs) -> (payload, branch)
    run_batch(**inputs) -> (payload, branch)

- ``payload`` is a dict of named outputs (documents, answers, ...).
- ``branch`` is ``"output_1"`` .. ``"output_<outgoing_edges>"``, or
  ``"output_all"`` to follow every outgoing edge.
- The pipeline passes only the arguments a run method declares. Payload keys
  the component does not produce are carried forward to the next node.
- Components hold no per-run state. Per-call options (params, debug) are
  resolved on every dispatch and never written back onto the instance, so
  one component can serve several pipelines and repeated runs agree.
"""

from __future__ import annotations

import functools
import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from needle.contracts.errors import PipelineError, describe_params
from needle.contracts.types import NodeResult, Payload

# Payload keys owned by the pipeline, never passed through as node inputs
_RESERVED_KEYS = frozenset({"inputs", "params", "_debug"})


@dataclass(frozen=True, slots=True)
class ComponentCall:
    """Outcome of one dispatch: what went in, what came out, which branch."""

    output: Payload
    branch: str
    inputs: dict[str, Any]
    debug: bool
    runtime: Any = None


def accepted_arguments(method: Callable[..., Any]) -> frozenset[str] | None:
    """Names a run method accepts; None if it takes **kwargs."""
    parameters = inspect.signature(method).parameters
    if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in parameters.values()):
        return None
    return frozenset(name for name in parameters if name != "self")


class Configurable:
    """Records constructor arguments for export to a declarative description.

    Components and the collaborators they reference (document stores)
    inherit this so ``Pipeline.get_config()`` can rebuild them by type name.
    """

    _component_params: dict[str, Any]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "__init__" in cls.__dict__:
            cls.__init__ = _record_init_params(cls.__dict__["__init__"])  # type: ignore[misc]

    @property
    def type(self) -> str:
        """Component type name as used in declarative descriptions."""
        return type(self).__name__

    def get_params(self) -> dict[str, Any]:
        """Constructor arguments this instance was created with."""
        return dict(getattr(self, "_component_params", {}))


class BaseComponent(Configurable, ABC):
    """Base class for all pipeline nodes.

    Subclasses set ``outgoing_edges`` (class attribute, or instance
    attribute in __init__ when it depends on configuration) and implement
    ``run`` and ``run_batch``.

        class Uppercase(BaseComponent):
            def run(self, query: str) -> NodeResult:
                return {"query": query.upper()}, "output_1"

            def run_batch(self, queries: list[str]) -> NodeResult:
                return {"queries": [q.upper() for q in queries]}, "output_1"
    """

    outgoing_edges: int = 1

    # Default debug flag; overridden per call by the pipeline's debug
    # argument or by params={"<node>": {"debug": ...}}
    debug: bool = False

    @abstractmethod
    def run(self, *args: Any, **kwargs: Any) -> NodeResult:
        """Process one invocation."""

    @abstractmethod
    def run_batch(self, *args: Any, **kwargs: Any) -> NodeResult:
        """Process a batch invocation."""

    def dispatch(self, node_name: str, payload: Payload, *, batch: bool = False) -> ComponentCall:
        """Call ``run`` (or ``run_batch``) with the arguments it declares.

        Params addressed to ``node_name`` must all be arguments of the run
        method; global params apply wherever the run method accepts them.
        Node-targeted values win over global ones.

        Raises:
            PipelineError: On unknown node-targeted params or a malformed result
        """
        method = self.run_batch if batch else self.run
        accepted = accepted_arguments(method)
        params: dict[str, Any] = payload.get("params") or {}

        debug = self.debug
        if "debug" in params and not isinstance(params["debug"], dict):
            debug = bool(params["debug"])

        global_params: dict[str, Any] = {}
        targeted_params: dict[str, Any] = {}
        for key, value in params.items():
            if key == node_name:
                if not isinstance(value, dict):
                    raise PipelineError(f"Params for node '{node_name}' must be a mapping, got {type(value).__name__}.")
                targeted = dict(value)
                if "debug" in targeted:
                    debug = bool(targeted.pop("debug"))
                invalid = [k for k in targeted if accepted is not None and k not in accepted]
                if invalid:
                    raise PipelineError(
                        f"Invalid parameter(s) {sorted(invalid)} for node '{node_name}'. "
                        f"Valid parameters: {describe_params(dict.fromkeys(accepted or ()))}."
                    )
                targeted_params.update(targeted)
            elif key != "debug" and accepted is not None and key in accepted:
                global_params[key] = value

        run_inputs = {
            key: value for key, value in payload.items() if key not in _RESERVED_KEYS and (accepted is None or key in accepted)
        }
        if "inputs" in payload and (accepted is None or "inputs" in accepted):
            run_inputs["inputs"] = payload["inputs"]
        call_kwargs = {**run_inputs, **global_params, **targeted_params}

        result = method(**call_kwargs)
        if not (isinstance(result, tuple) and len(result) == 2 and isinstance(result[0], dict) and isinstance(result[1], str)):
            raise PipelineError(f"Node '{node_name}' must return a (dict, str) tuple, got {type(result).__name__}.")
        raw_output, branch = result

        output = {key: value for key, value in raw_output.items() if key != "_debug"}
        runtime = raw_output.get("_debug")

        for key, value in payload.items():
            if key not in output and key not in _RESERVED_KEYS:
                output[key] = value
        output["params"] = params

        return ComponentCall(output=output, branch=branch, inputs=call_kwargs, debug=debug, runtime=runtime)


def _record_init_params(init: Callable[..., None]) -> Callable[..., None]:
    """Wrap __init__ so the outermost call records its bound arguments."""
    signature = inspect.signature(init)

    @functools.wraps(init)
    def wrapper(self: Configurable, *args: Any, **kwargs: Any) -> None:
        if "_component_params" not in self.__dict__:
            bound = signature.bind(self, *args, **kwargs)
            bound.apply_defaults()
            recorded: dict[str, Any] = {}
            for name, value in bound.arguments.items():
                if name == "self":
                    continue
                kind = signature.parameters[name].kind
                if kind is inspect.Parameter.VAR_KEYWORD:
                    recorded.update(value)
                elif kind is not inspect.Parameter.VAR_POSITIONAL:
                    recorded[name] = value
            self._component_params = recorded
        init(self, *args, **kwargs)

    return wrapper
