"""Declarative plugin definition.

This module defines the top-level declarative container used to describe
the test units provided by a pytest-strata plugin.

A plugin contributes:
- test unit shapes (subclasses of `Spec`), tried in declaration order
  when a scenario is resolved;
- an optional defaults model decoding the plugin's section of a
  scenario's `defaults` mapping.

The plugin model itself is purely declarative. It is consumed by the
plugin registry and the scenario parser.
"""

from pydantic import Field

from pytest_strata.models import SchemaModel
from pytest_strata.names import PluginName  # noqa: TC001
from pytest_strata.schema import Spec

from .fixtures import Fixture

__all__ = (
    'Fixture',
    'Plugin',
)


class Plugin(SchemaModel):
    """Declarative container for test unit shapes.

    A plugin is a named source of test unit shapes and of the decoder
    for its default configuration. Names are case-insensitively unique
    within a registry.
    """

    name: PluginName = Field(
        title='Plugin name',
        description=(
            'Name of the plugin. '
            'Used for identification, diagnostics, and as the key of the '
            'plugin configuration in scenario defaults.'
        ),
    )

    description: str | None = Field(
        default=None,
        title='Plugin description',
        description='Human-readable description of the plugin.',
    )

    version: int = Field(
        default=1,
        title='Contract version',
        description=(
            'Version of the plugin contract. '
            'This is not a semantic version of the plugin implementation.'
        ),
    )

    defaults: type[SchemaModel] | None = Field(
        default=None,
        title='Defaults model',
        description=(
            'Model decoding the plugin section of scenario defaults. '
            'Without a model the raw mapping is kept.'
        ),
    )

    specs: list[type[Spec]] = Field(
        default_factory=list,
        title='Test unit shapes',
        description=(
            'Test unit shapes provided by the plugin, in the order they '
            'are tried during resolution.'
        ),
    )
