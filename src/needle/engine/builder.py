# src/needle/engine/builder.py
"""Build pipelines from declarative descriptions and export them back.

Component params that are strings naming another declared component are
replaced by that component's instance (dependencies first). Each component
is instantiated once even when several nodes reference it.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from needle.contracts import PipelineConfigError
from needle.core.config import (
    ComponentSettings,
    NeedleSettings,
    PipelineNodeSettings,
    PipelineSettings,
    load_settings,
)
from needle.core.dag import ROOT_NAMES, branch_index
from needle.core.logging import get_logger
from needle.plugins.base import BaseComponent, Configurable

if TYPE_CHECKING:
    from needle.engine.pipeline import Pipeline
    from needle.plugins.manager import PluginManager

logger = get_logger(__name__)

# Module-level singleton for plugin manager
_plugin_manager_cache: PluginManager | None = None


def get_plugin_manager() -> PluginManager:
    """Get initialized plugin manager (singleton).

    Returns:
        PluginManager with all built-in components registered
    """
    global _plugin_manager_cache

    from needle.plugins.manager import PluginManager

    if _plugin_manager_cache is None:
        manager = PluginManager()
        manager.register_builtin_plugins()
        _plugin_manager_cache = manager
    return _plugin_manager_cache


def parse_settings(config: dict[str, Any] | NeedleSettings) -> NeedleSettings:
    """Validate a raw description.

    Raises:
        PipelineConfigError: If validation fails
    """
    if isinstance(config, NeedleSettings):
        return config
    try:
        return NeedleSettings.model_validate(config)
    except ValidationError as e:
        raise PipelineConfigError(f"Invalid pipeline configuration:\n{e}") from e


def load_settings_file(path: Path) -> NeedleSettings:
    """load_settings() with validation errors mapped to PipelineConfigError."""
    try:
        return load_settings(path)
    except ValidationError as e:
        raise PipelineConfigError(f"Invalid pipeline configuration in {path}:\n{e}") from e


class _ComponentFactory:
    """Instantiates declared components on demand, resolving references."""

    def __init__(self, settings: NeedleSettings, plugin_manager: PluginManager) -> None:
        self._settings = settings
        self._manager = plugin_manager
        self._names = {c.name for c in settings.components}
        self._instances: dict[str, Any] = {}

    def get(self, name: str, _stack: tuple[str, ...] = ()) -> Any:
        if name in self._instances:
            return self._instances[name]
        if name in _stack:
            chain = " -> ".join([*_stack, name])
            raise PipelineConfigError(f"Circular component reference: {chain}")

        declared = self._settings.get_component(name)
        component_cls = self._manager.get_component_class(declared.type)

        params: dict[str, Any] = {}
        for key, value in declared.params.items():
            if isinstance(value, str) and value in self._names and value != name:
                params[key] = self.get(value, (*_stack, name))
            else:
                params[key] = value

        try:
            instance = component_cls(**params)
        except (TypeError, ValueError) as e:
            raise PipelineConfigError(f"Cannot create component '{name}' of type '{declared.type}': {e}") from e

        logger.debug("Created component", component=name, type=declared.type)
        self._instances[name] = instance
        return instance


def build_pipeline(
    settings: NeedleSettings,
    *,
    pipeline_name: str | None = None,
    plugin_manager: PluginManager | None = None,
) -> Pipeline:
    """Build the pipeline ``pipeline_name`` (or the only one) from settings.

    Raises:
        PipelineConfigError: On unknown pipelines or types, bad params, or
            invalid wiring
    """
    from needle.engine.pipeline import Pipeline

    try:
        pipeline_settings = settings.get_pipeline(pipeline_name)
    except KeyError:
        available = ", ".join(p.name for p in settings.pipelines)
        raise PipelineConfigError(f"No pipeline named '{pipeline_name}'. Available pipelines: {available}") from None
    except ValueError as e:
        raise PipelineConfigError(str(e)) from e

    factory = _ComponentFactory(settings, plugin_manager or get_plugin_manager())
    pipeline = Pipeline()
    for node in pipeline_settings.nodes:
        component = factory.get(node.name)
        if not isinstance(component, BaseComponent):
            raise PipelineConfigError(f"Component '{node.name}' ({type(component).__name__}) is not a pipeline node and cannot be added to a pipeline.")
        pipeline.add_node(component=component, name=node.name, inputs=node.inputs)

    pipeline.graph.validate()
    return pipeline


def _format_reference(node: str, branch: str) -> str:
    return node if branch_index(branch) == 1 else f"{node}.{branch}"


def export_settings(pipeline: Pipeline, pipeline_name: str = "query") -> NeedleSettings:
    """Describe ``pipeline`` in the declarative format.

    Params holding Configurable instances (document stores, nested
    components) become separate component entries referenced by name.

    Raises:
        PipelineConfigError: If the pipeline is empty
    """
    if pipeline.root_node is None:
        raise PipelineConfigError("Cannot export an empty pipeline")

    entries: list[ComponentSettings] = []
    names_by_id: dict[int, str] = {}
    taken: set[str] = set(pipeline.components)

    def describe(name: str, instance: Configurable) -> str:
        if id(instance) in names_by_id:
            return names_by_id[id(instance)]
        names_by_id[id(instance)] = name
        params: dict[str, Any] = {}
        for key, value in instance.get_params().items():
            if isinstance(value, Configurable):
                params[key] = describe(_unique_name(value.type, taken), value)
            else:
                params[key] = value
        entries.append(ComponentSettings(name=name, type=instance.type, params=params))
        return name

    for name, component in pipeline.components.items():
        # One instance may serve several nodes; every node still needs an entry
        names_by_id.pop(id(component), None)
        describe(name, component)

    nodes = []
    for name in pipeline.graph.topological_order():
        if name in ROOT_NAMES:
            continue
        info = pipeline.graph.get_node_info(name)
        nodes.append(PipelineNodeSettings(name=name, inputs=[_format_reference(ref.node, ref.branch) for ref in info.inputs]))

    return NeedleSettings(components=entries, pipelines=[PipelineSettings(name=pipeline_name, nodes=nodes)])


def _unique_name(base: str, taken: set[str]) -> str:
    name = base
    suffix = 2
    while name in taken:
        name = f"{base}_{suffix}"
        suffix += 1
    taken.add(name)
    return name
