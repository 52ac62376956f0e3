"""Plugin system: component base class, protocols, discovery and hooks.

Built-in nodes live in the subpackages and are registered through
PluginManager.register_builtin_plugins().
"""

from needle.plugins.base import BaseComponent, ComponentCall, Configurable
from needle.plugins.hookspecs import hookimpl
from needle.plugins.manager import PluginManager, PluginSpec
from needle.plugins.protocols import DocumentStoreProtocol

__all__ = [
    "BaseComponent",
    "ComponentCall",
    "Configurable",
    "DocumentStoreProtocol",
    "PluginManager",
    "PluginSpec",
    "hookimpl",
]
