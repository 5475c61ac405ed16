"""Base Pydantic models for scenario elements.

This module defines the foundational model classes used by all scenario
structures. It enforces immutability and strict schema validation so that
resolved scenarios are deterministic and explicit.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for all scenario elements.

    This class serves as the root for all Pydantic models representing
    scenario constructs such as test units, waits, timeouts and plugin
    declarations.

    Design principles enforced by this model:
        - Immutability: elements cannot be modified after creation.
          A resolved scenario is read-only while it runs.
        - Strict schema validation: unknown or extra fields are rejected.
          Test unit resolution relies on this rejection to tell which
          plugin shape owns a document node.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )

    @classmethod
    def document_fields(cls) -> frozenset[str]:
        """Return every key this model accepts in a document.

        Validation aliases are returned instead of attribute names when
        a field declares one.

        Returns:
            A set of accepted document keys.
        """
        return frozenset(
            field.validation_alias if isinstance(field.validation_alias, str) else name
            for name, field in cls.model_fields.items()
        )

    @classmethod
    def required_fields(cls) -> frozenset[str]:
        """Return the document keys that must be present.

        Returns:
            A set of required document keys.
        """
        return frozenset(
            field.validation_alias if isinstance(field.validation_alias, str) else name
            for name, field in cls.model_fields.items()
            if field.is_required()
        )


class DescribedMixin(SchemaModel):
    """Mixin providing element self-documentation.

    The fields defined in this model do not affect execution semantics
    and are used for reporting only.
    """

    name: str | None = Field(
        default=None,
        title='Name',
        description='Short human-readable name of the element.',
    )

    description: str | None = Field(
        default=None,
        title='Description',
        description='Detailed human-readable description of the element.',
    )


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    This class serves as the root for all settings models responsible for
    resolving runtime configuration from environment variables, CI-provided
    values, or local overrides.

    Design principles enforced by this model:
        - Immutability: resolved settings cannot be modified after creation.
        - Tolerant schema handling: unknown or extra fields are ignored, so
          unrelated variables in the environment never break resolution.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
