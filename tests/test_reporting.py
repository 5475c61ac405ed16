"""Tests for the reporting sink."""

import pytest

from pytest_strata.reporting import FatalFailure, Reporter


def test_nested_paths() -> None:
    """Name nested scopes after their ancestors."""
    reporter = Reporter()

    with reporter.subtest('scenario') as scenario, scenario.subtest('unit') as unit:
        unit.fail('status is 500')

    assert unit.path == 'scenario/unit'
    assert reporter.failed
    assert scenario.failed
    assert list(reporter.failures()) == [('scenario/unit', 'status is 500')]
    assert reporter.summary() == 'scenario/unit: status is 500'


def test_fatal_stops_scope() -> None:
    """Leave only the scope a fatal failure was recorded in."""
    reporter = Reporter()
    reached = []

    with reporter.subtest('first') as first:
        first.fatal('gone')
        reached.append('first')

    with reporter.subtest('second'):
        reached.append('second')

    assert reached == ['second']
    assert first.aborted
    assert reporter.summary() == 'first: gone'


def test_fatal_of_outer_scope() -> None:
    """Propagate a fatal failure through nested scopes to its own."""
    reporter = Reporter()

    with reporter.subtest('outer') as outer:
        with outer.subtest('inner'):
            outer.fatal('outer gone')

    assert outer.aborted
    assert not outer.children[0].aborted

    with pytest.raises(FatalFailure):
        reporter.fatal('root gone')


def test_run() -> None:
    """Run a function in a nested scope."""
    reporter = Reporter()

    assert reporter.run('passing', lambda scope: None)
    assert not reporter.run('failing', lambda scope: scope.fail('nope'))
    assert [child.name for child in reporter.children] == ['passing', 'failing']
    assert reporter.summary() == 'failing: nope'


def test_root_failures() -> None:
    """Render failures of the unnamed root scope."""
    reporter = Reporter()
    reporter.fail('broken')

    assert reporter.summary() == '<root>: broken'
    assert repr(reporter) == "Reporter('', failed=True)"
