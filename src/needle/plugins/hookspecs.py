# src/needle/plugins/hookspecs.py
"""pluggy hook specifications for needle plugins.

Plugins implement these hooks to register component classes with the
framework. The plugin manager calls them during discovery.

Usage (implementing a plugin):
    from needle.plugins.hookspecs import hookimpl

    class MyPlugin:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def needle_get_components(self):
            return [MyRetriever, MyDocumentStore]
"""

from typing import Any

import pluggy

# Project name for pluggy
PROJECT_NAME = "needle"

# Hook specification marker
hookspec = pluggy.HookspecMarker(PROJECT_NAME)

# Hook implementation marker (for plugins to use)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class NeedleComponentSpec:
    """Hook specifications for component plugins."""

    @hookspec
    def needle_get_components(self) -> list[type[Any]]:  # type: ignore[empty-body]
        """Return component classes.

        Node classes subclass BaseComponent; collaborators referenced from
        node params (document stores) subclass Configurable. Classes are
        registered under their ``__name__``.

        Returns:
            List of component classes (not instances)
        """
