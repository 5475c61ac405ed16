"""Tests for test unit results."""

import pytest

from pytest_strata.errors import DSLRuntimeError, RequiredFixtureError
from pytest_strata.result import (
    Result,
    with_data,
    with_failures,
    with_runtime_error,
    with_var,
)


def test_empty_result() -> None:
    """Build a result without modifiers."""
    result = Result()

    assert result.error is None
    assert not result.has_runtime_error
    assert result.data == {}
    assert not result.has_data
    assert result.vars == {}
    assert not result.has_vars
    assert result.failures == []
    assert not result.failed


def test_result_modifiers() -> None:
    """Apply modifiers in order."""
    error = RequiredFixtureError('books_api')
    failure = AssertionError('status is 500')

    result = Result(
        with_runtime_error(error),
        with_data('state', 'first'),
        with_data('state', 'second'),
        with_var('token', 'secret'),
        with_failures(failure),
    )

    assert result.error is error
    assert result.has_runtime_error
    assert result.data == {'state': 'second'}
    assert result.vars == {'token': 'secret'}
    assert result.failures == [failure]
    assert result.failed


def test_result_setters() -> None:
    """Update a result after construction."""
    result = Result()

    result.set_data('state', 1)
    result.set_var('token', 'secret')
    result.set_failures(AssertionError('first'), AssertionError('second'))
    result.set_error(DSLRuntimeError('broken'))

    assert result.data == {'state': 1}
    assert result.has_vars
    assert len(result.failures) == 2
    assert result.has_runtime_error


@pytest.mark.parametrize('error', (
    pytest.param(ValueError('not a runtime error'), id='value error'),
    pytest.param(AssertionError('a failure'), id='assertion'),
))
def test_runtime_error_only(error: Exception) -> None:
    """Refuse anything but runtime errors as the result error."""
    with pytest.raises(TypeError, match=r'to be a DSLRuntimeError'):
        with_runtime_error(error)  # type: ignore[arg-type]

    with pytest.raises(TypeError):
        Result().set_error(error)  # type: ignore[arg-type]
