"""Base schema of test units.

Defines immutable Pydantic models shared by every plugin: the test unit
base shape, its timing policies and the scenario defaults container.
"""

from .specs import BASE_SPEC_FIELDS, Defaults, Spec
from .timing import Timeout, Wait

__all__ = (
    'BASE_SPEC_FIELDS',
    'Defaults',
    'Spec',
    'Timeout',
    'Wait',
)
