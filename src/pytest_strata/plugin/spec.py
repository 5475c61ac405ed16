"""Pytest collector for YAML scenario files.

Each collected file is resolved with the session `ScenarioParser`
against the plugins of the session context and becomes one
`ScenarioItem`.
"""

from typing import TYPE_CHECKING

import pytest

from .case import ScenarioItem

if TYPE_CHECKING:
    from collections.abc import Iterable


class ScenarioFile(pytest.File):
    """Pytest file collector for scenario documents."""

    __test__ = False

    def collect(self) -> 'Iterable[ScenarioItem]':
        """Collect the scenario of a YAML file.

        Returns:
            Iterable holding a single `ScenarioItem`.

        Raises:
            DSLSchemaError: If the document cannot be resolved.
        """
        scenario = self.config.strata_parser.parse_file(  # type: ignore[attr-defined]
            self.path,
            context=self.config.strata_context,  # type: ignore[attr-defined]
        )

        yield ScenarioItem.from_parent(
            self,
            name=self.path.stem,
            scenario=scenario,
            context=self.config.strata_context,  # type: ignore[attr-defined]
        )
