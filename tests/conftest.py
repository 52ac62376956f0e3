# tests/conftest.py
"""Shared test fixtures.

Test nodes live in tests/fixtures/nodes.py and the in-memory document store
in tests/fixtures/stores.py; both are plain classes so tests can build
pipelines directly. Tests that go through the declarative path use the
``plugin_manager`` fixture, which registers them alongside the built-ins.

Hypothesis profiles (pick one with HYPOTHESIS_PROFILE):
- ci: 100 examples, the default
- nightly: 1000 examples
- debug: 10 examples, verbose
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from typing import TYPE_CHECKING

import pytest
from hypothesis import HealthCheck, Verbosity, settings

if TYPE_CHECKING:
    from needle.plugins.manager import PluginManager


@pytest.fixture
def plugin_manager() -> PluginManager:
    """Plugin manager with built-ins plus the test store and test nodes."""
    from needle.plugins.manager import PluginManager
    from tests.fixtures.nodes import TestNodesPlugin
    from tests.fixtures.stores import StorePlugin

    manager = PluginManager()
    manager.register_builtin_plugins()
    manager.register(StorePlugin())
    manager.register(TestNodesPlugin())
    return manager


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Restore quiet logging after tests that reconfigure it."""
    yield
    from needle.core.logging import configure_logging

    configure_logging(level="WARNING")


_PROFILES: dict[str, dict[str, object]] = {
    "ci": {"max_examples": 100},
    "nightly": {"max_examples": 1000},
    "debug": {"max_examples": 10, "verbosity": Verbosity.verbose},
}
for _name, _options in _PROFILES.items():
    settings.register_profile(_name, deadline=None, suppress_health_check=[HealthCheck.too_slow], **_options)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
