"""Pytest item running a resolved scenario.

The item runs the scenario against a fresh `Reporter`. Runtime errors
raised by the engine fail the item as errors, assertion failures
recorded by the reporter fail it as failures, with every recorded
message in the report.
"""

from typing import TYPE_CHECKING

import pytest

from pytest_strata.errors import DSLError, RuntimeErrors
from pytest_strata.reporting import Reporter

if TYPE_CHECKING:
    from typing import Any

if TYPE_CHECKING:
    from _pytest._code.code import ExceptionInfo, TerminalRepr

if TYPE_CHECKING:
    from pytest_strata.context import Context
    from pytest_strata.core import Scenario


class ScenarioFailure(AssertionError):
    """Assertion failures recorded while a scenario ran."""


class ScenarioItem(pytest.Item):
    """Pytest item executing a single scenario."""

    __test__ = False

    def __init__(self, *,
                 scenario: 'Scenario',
                 context: 'Context',
                 **kwargs: 'Any') -> None:
        """Initialize a pytest item backed by a scenario.

        Args:
            scenario: Resolved scenario to run.
            context: Context providing fixtures and plugins.
            **kwargs: Keyword pytest.Item arguments.
        """
        super().__init__(**kwargs)

        self.scenario = scenario
        self.context = context
        self.reporter: Reporter | None = None

    def runtest(self) -> None:
        """Execute the scenario.

        Raises:
            ScenarioFailure: If any assertion failure was recorded.
            RuntimeErrors: If the scenario produced runtime errors.
            RequiredFixtureError: If a required fixture is missing.
        """
        self.reporter = Reporter()

        errors: RuntimeErrors | None = None
        try:
            self.scenario.run(self.context, self.reporter)

        except RuntimeErrors as base:
            errors = base

        if self.reporter.failed:
            raise ScenarioFailure(self.reporter.summary()) from errors

        if errors is not None:
            raise errors

    def repr_failure(self, excinfo: 'ExceptionInfo[BaseException]',
                     style: 'Any' = None) -> 'str | TerminalRepr':
        """Render scenario errors without the engine traceback."""
        if isinstance(excinfo.value, (DSLError, ScenarioFailure)):
            return str(excinfo.value)

        return super().repr_failure(excinfo, style=style)

    def reportinfo(self) -> tuple['Any', int | None, str]:
        """Location of the scenario for pytest reports."""
        return self.path, None, f'scenario: {self.scenario.title}'
