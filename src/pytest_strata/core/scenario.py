"""Scenario model and execution engine.

A `Scenario` is the resolved form of one YAML document: metadata, the
fixtures it requires, the decoded plugin defaults and the ordered test
units. Running a scenario starts its fixtures, runs every unit in order
inside a single reporting scope and aggregates runtime errors.
"""

import time
from contextlib import ExitStack
from logging import getLogger
from os.path import basename
from typing import TYPE_CHECKING

from pydantic import Field

from pytest_strata import debug
from pytest_strata.errors import (
    FORMAT_FILENAME,
    DSLRuntimeError,
    RequiredFixtureError,
    RuntimeErrors,
    TimeoutExceededError,
)
from pytest_strata.models import DescribedMixin, SchemaModel
from pytest_strata.names import normalize_name
from pytest_strata.schema import Defaults, Spec

if TYPE_CHECKING:
    from io import TextIOBase
    from os import PathLike
    from typing import Self

if TYPE_CHECKING:
    from pytest_strata.context import Context
    from pytest_strata.extensions import Fixture
    from pytest_strata.reporting import Reporter


logger = getLogger(__name__)


class Scenario(DescribedMixin, SchemaModel):
    """Ordered collection of test units loaded from one document."""

    path: str | None = Field(
        default=None,
        title='Path',
        description='Path of the document the scenario was loaded from.',
    )

    defaults: Defaults = Field(
        default_factory=Defaults,
        title='Defaults',
        description='Decoded plugin defaults keyed by lowercased plugin name.',
    )

    require: tuple[str, ...] = Field(
        default=(),
        title='Required fixtures',
        description='Names of fixtures started before the scenario runs.',
    )

    tests: tuple[Spec, ...] = Field(
        default=(),
        title='Test units',
        description='Test units in execution order.',
    )

    @property
    def title(self) -> str:
        """Name of the scenario, falling back to the document file name."""
        if self.name:
            return self.name

        if self.path:
            return basename(self.path)

        return FORMAT_FILENAME

    @classmethod
    def from_reader(cls, content: 'TextIOBase | str', *,
                    path: 'str | PathLike[str] | None' = None,
                    context: 'Context | None' = None) -> 'Self':
        """Resolve a scenario from YAML content.

        Raises:
            DSLSchemaError: If the content cannot be resolved.
        """
        from .parser import ScenarioParser  # noqa: PLC0415

        return ScenarioParser().parse(content, path=path, context=context)

    @classmethod
    def from_file(cls, path: 'str | PathLike[str]', *,
                  context: 'Context | None' = None) -> 'Self':
        """Resolve a scenario from a YAML file.

        Raises:
            DSLSchemaError: If the file cannot be resolved.
        """
        from .parser import ScenarioParser  # noqa: PLC0415

        return ScenarioParser().parse_file(path, context=context)

    def run(self, context: 'Context', reporter: 'Reporter') -> None:
        """Run every test unit of the scenario.

        Required fixtures are started first and stopped in reverse order
        once the run is over, whatever its outcome. All units report to
        one scope named after the scenario; data returned by a unit is
        visible to every later unit.

        Args:
            context: Context providing fixtures and plugins.
            reporter: Parent reporting scope.

        Raises:
            RequiredFixtureError: If a required fixture is not provided.
                Nothing is started in that case.
            RuntimeErrors: If any unit produced a runtime error.
        """
        fixtures = self.lookup_fixtures(context)
        errors = RuntimeErrors()
        logger.debug('running scenario %r with %d test unit(s)', self.title, len(self.tests))

        with ExitStack() as stack:
            for name, fixture in fixtures:
                debug.println(context, 'fixture: start %s', name)
                fixture.start()
                stack.callback(self.stop_fixture, context, name, fixture)

            with reporter.subtest(self.title) as scope:
                for unit in self.tests:
                    context = self.run_unit(unit, context, scope, errors)

        if not errors.empty:
            raise errors

    def lookup_fixtures(self, context: 'Context') -> list[tuple[str, 'Fixture']]:
        """Return the required fixtures in declaration order.

        Raises:
            RequiredFixtureError: If any of them is missing.
        """
        fixtures = []
        for name in self.require:
            fixture = context.fixtures.get(normalize_name(name))
            if fixture is None:
                raise RequiredFixtureError(name)
            fixtures.append((name, fixture))

        return fixtures

    @staticmethod
    def stop_fixture(context: 'Context', name: str, fixture: 'Fixture') -> None:
        """Stop a started fixture."""
        debug.println(context, 'fixture: stop %s', name)
        fixture.stop()

    def run_unit(self, unit: Spec, context: 'Context', scope: 'Reporter',
                 errors: RuntimeErrors) -> 'Context':
        """Run one test unit and record its outcome.

        Args:
            unit: Test unit to run.
            context: Context of the run so far.
            scope: Reporting scope of the scenario.
            errors: Aggregate receiving runtime errors.

        Returns:
            The context for the next unit, holding this unit's run data.

        Raises:
            FatalFailure: If the unit ran past an unexpected timeout.
        """
        wait = unit.wait
        if wait is not None and wait.before:
            debug.println(context, 'wait: %s before', wait.before)
            time.sleep(max(0.0, wait.before_duration.total_seconds()))

        timeout = unit.timeout
        unit_context = context
        if timeout is not None and timeout.after:
            unit_context = context.with_timeout(timeout.duration)

        result = error = None
        try:
            result = unit.run(unit_context, scope)

        except Exception as exc:  # noqa: BLE001
            error = exc

        if timeout is not None and timeout.after and unit_context.timed_out():
            if not timeout.expected:
                timeout_error = TimeoutExceededError(timeout.after)
                errors.append_if(timeout_error)
                scope.fatal(timeout_error.message)
            debug.println(context, 'timeout: %s expected', timeout.after)
            result = error = None

        if isinstance(error, AssertionError):
            scope.fail(str(error) or repr(error))

        elif isinstance(error, DSLRuntimeError):
            errors.append_if(error)

        elif error is not None:
            wrapped = DSLRuntimeError.from_unit(
                unit,
                message=repr(error),
                filename=self.path,
                unit_num=unit.index,
            )
            wrapped.__cause__ = error
            logger.debug('test unit %d raised %r', unit.index, error)
            errors.append_if(wrapped)

        if result is not None:
            if result.has_data:
                context = context.store_prior_run(result.data)
            errors.append_if(result.error)
            for failure in result.failures:
                scope.fail(str(failure) or repr(failure))

        if wait is not None and wait.after:
            debug.println(context, 'wait: %s after', wait.after)
            time.sleep(max(0.0, wait.after_duration.total_seconds()))

        return context
