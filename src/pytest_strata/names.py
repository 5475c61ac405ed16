"""Identifier patterns and validation rules.

Plugin names and fixture names share one base pattern. Both are compared
case-insensitively by the registry, the context and the engine.
"""

from typing import Annotated

from pydantic import Field

#: Base pattern for all identifiers.
#: Identifiers must start with a letter and may contain letters, digits, or underscores
_NAME_PATTERN = r'[a-zA-Z][\w]*'


PluginName = Annotated[
    str, Field(
        pattern=rf'^{_NAME_PATTERN}$',
        title='Plugin name',
        description=(
            'Name of a plugin providing test unit shapes. '
            'The same name keys the plugin configuration in the '
            '`defaults` section of a scenario. '
            'Names are compared case-insensitively.'
        ),
        examples=[
            'exec',
            'http',
        ],
    ),
]


def normalize_name(name: str) -> str:
    """Return the lookup key for a plugin or fixture name."""
    return name.lower()
