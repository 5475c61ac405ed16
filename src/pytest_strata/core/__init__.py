"""Scenario resolution and execution.

This module defines the core infrastructure for loading and running
YAML scenario documents.

It provides:
- a thread-safe plugin registry with entry point discovery;
- a parser resolving test unit nodes to plugin shapes;
- the scenario model and its execution engine.

The primary public entry point is `ScenarioParser`, which composes a
YAML document, expands environment variables and resolves every test
unit against the plugins of a context.
"""

from .parser import ScenarioParser
from .registry import PluginRegistry
from .scenario import Scenario

__all__ = (
    'PluginRegistry',
    'Scenario',
    'ScenarioParser',
)
