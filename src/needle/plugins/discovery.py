"""Dynamic plugin discovery by package scanning.

Scans the built-in plugin packages for classes that:
1. Inherit from BaseComponent
2. Are defined in the scanned module (not imported into it)
3. Are not abstract
"""

import importlib
import inspect
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Built-in node packages under needle.plugins (non-recursive)
PLUGIN_PACKAGES: tuple[str, ...] = (
    "answers",
    "classifiers",
    "converters",
    "joins",
    "preprocessors",
    "retrievers",
)


def discover_plugins_in_package(package: str, base_class: type) -> list[type]:
    """Discover component classes in one ``needle.plugins`` subpackage.

    Modules are imported by their package-qualified name so discovered
    classes are the same objects user code imports.

    Args:
        package: Subpackage name, e.g. "joins"
        base_class: Base class that components must inherit from

    Returns:
        List of discovered classes, in file then name order
    """
    directory = Path(__file__).parent / package
    discovered: list[type] = []

    if not directory.exists():
        logger.warning("Plugin directory does not exist: %s", directory)
        return discovered

    for py_file in sorted(directory.glob("*.py")):
        if py_file.name == "__init__.py":
            continue

        # Built-in plugin code is ours: import errors are bugs and propagate
        module = importlib.import_module(f"needle.plugins.{package}.{py_file.stem}")
        for _name, obj in inspect.getmembers(module, inspect.isclass):
            if obj.__module__ != module.__name__:
                continue
            if not issubclass(obj, base_class) or obj is base_class:
                continue
            if inspect.isabstract(obj):
                continue
            discovered.append(obj)

    return discovered


def discover_all_plugins() -> list[type]:
    """Discover all built-in component classes.

    Raises:
        ValueError: If two built-in classes share a name
    """
    from needle.plugins.base import BaseComponent

    result: list[type] = []
    seen: dict[str, type] = {}
    for package in PLUGIN_PACKAGES:
        for cls in discover_plugins_in_package(package, BaseComponent):
            if cls.__name__ in seen:
                raise ValueError(
                    f"Duplicate component name '{cls.__name__}': found in both "
                    f"{seen[cls.__name__].__module__} and {cls.__module__}."
                )
            seen[cls.__name__] = cls
            result.append(cls)
    return result


def get_plugin_description(plugin_cls: type) -> str:
    """First non-empty docstring line, or a name-based fallback."""
    if plugin_cls.__doc__:
        for line in plugin_cls.__doc__.strip().split("\n"):
            cleaned = line.strip()
            if cleaned:
                return cleaned
    return f"{plugin_cls.__name__} component"


def create_dynamic_hookimpl(plugin_classes: list[type]) -> object:
    """Create a pluggy hookimpl object that returns ``plugin_classes``."""
    from needle.plugins.hookspecs import hookimpl

    class DynamicHookImpl:
        """Hook implementation generated for one plugin directory."""

        pass

    def needle_get_components(self: Any) -> list[type]:
        return plugin_classes

    DynamicHookImpl.needle_get_components = hookimpl(needle_get_components)  # type: ignore[attr-defined]

    return DynamicHookImpl()
