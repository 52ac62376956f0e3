# src/needle/plugins/manager.py
"""Registry of component types, keyed by the name used in pipeline YAML.

Plugins contribute classes through the pluggy hook ``needle_get_components``.
"""

from dataclasses import dataclass
from typing import Any

import pluggy

from needle.contracts.errors import PipelineConfigError
from needle.core.dag.models import _suggest_similar
from needle.plugins.base import BaseComponent
from needle.plugins.hookspecs import PROJECT_NAME, NeedleComponentSpec


@dataclass(frozen=True)
class PluginSpec:
    """Registration record for a component class."""

    name: str
    module: str
    is_node: bool
    outgoing_edges: int | None
    description: str

    @classmethod
    def from_class(cls, component_cls: type[Any]) -> "PluginSpec":
        from needle.plugins.discovery import get_plugin_description

        is_node = issubclass(component_cls, BaseComponent)
        # Instance-dependent edge counts are set in __init__, not on the class
        edges = component_cls.__dict__.get("outgoing_edges") if is_node else None
        return cls(
            name=component_cls.__name__,
            module=component_cls.__module__,
            is_node=is_node,
            outgoing_edges=edges if isinstance(edges, int) else None,
            description=get_plugin_description(component_cls),
        )


class PluginManager:
    """Maps component type names to classes from every registered plugin.

    Usage:
        manager = PluginManager()
        manager.register_builtin_plugins()
        manager.register(MyPlugin())

        retriever_cls = manager.get_component_class("Retriever")
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(NeedleComponentSpec)
        self._components: dict[str, type[Any]] = {}

    def register_builtin_plugins(self) -> None:
        """Discover and register all built-in node classes.

        Call this once at startup to make built-in nodes resolvable by name.
        """
        from needle.plugins.discovery import create_dynamic_hookimpl, discover_all_plugins

        self.register(create_dynamic_hookimpl(discover_all_plugins()))

    def register(self, plugin: Any) -> None:
        """Register a plugin implementing ``needle_get_components``.

        Raises:
            ValueError: If two registered plugins provide the same class name
        """
        self._pm.register(plugin)
        try:
            self._refresh_caches()
        except ValueError:
            self._pm.unregister(plugin)
            raise

    def _refresh_caches(self) -> None:
        new_components: dict[str, type[Any]] = {}
        for classes in self._pm.hook.needle_get_components():
            for cls in classes:
                name = cls.__name__
                existing = new_components.get(name)
                if existing is not None and existing is not cls:
                    raise ValueError(f"Duplicate component name: '{name}'. Already registered by {existing.__module__}")
                new_components[name] = cls
        self._components = new_components

    def get_components(self) -> list[type[Any]]:
        """All registered component classes."""
        return list(self._components.values())

    def get_specs(self) -> list[PluginSpec]:
        """Registration records, sorted by name."""
        return [PluginSpec.from_class(cls) for _, cls in sorted(self._components.items())]

    def get_component_class(self, name: str) -> type[Any]:
        """Resolve a type name from a declarative description.

        Raises:
            PipelineConfigError: If no class is registered under ``name``
        """
        try:
            return self._components[name]
        except KeyError:
            suggestions = _suggest_similar(name, sorted(self._components))
            hint = f" Did you mean: {', '.join(suggestions)}?" if suggestions else ""
            raise PipelineConfigError(f"Unknown component type '{name}'.{hint}") from None
