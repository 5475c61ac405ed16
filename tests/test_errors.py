"""Tests for error formatting and runtime error aggregation."""

import pytest
import yaml

from pytest_strata.errors import (
    DSLRuntimeError,
    DSLSchemaError,
    ExpectedMappingError,
    RequiredFixtureError,
    RuntimeErrors,
    TimeoutExceededError,
    UnknownFieldError,
)

from tests.examples.plugins import FooSpec


def test_runtime_errors_aggregate() -> None:
    """Aggregate runtime errors and skip missing ones."""
    errors = RuntimeErrors()
    assert errors.empty

    errors.append_if(None)
    errors.append_if(RequiredFixtureError('books_api'))
    errors.append_if(TimeoutExceededError('20ms'))

    assert not errors.empty
    assert len(errors) == 2
    assert [type(error) for error in errors] == [RequiredFixtureError, TimeoutExceededError]
    assert str(errors).splitlines() == [
        '2 runtime error(s) occurred',
        "  - Required fixture 'books_api' is missing",
        '  - Timeout exceeded: test unit did not complete within 20ms',
    ]


def test_runtime_errors_has() -> None:
    """Find errors by kind in nested aggregates and causes."""
    wrapped = DSLRuntimeError('wrapped')
    wrapped.__cause__ = KeyError('state')

    nested = RuntimeErrors([RequiredFixtureError('books_api')])
    errors = RuntimeErrors([wrapped, nested])

    assert errors.has(DSLRuntimeError)
    assert errors.has(RequiredFixtureError)
    assert errors.has(KeyError)
    assert not errors.has(TimeoutExceededError)
    assert isinstance(errors, DSLRuntimeError)


def test_error_from_unit() -> None:
    """Describe a failing test unit with its position."""
    unit = FooSpec(name='greet', foo='bar')

    error = DSLRuntimeError.from_unit(
        unit,
        message="KeyError('state')",
        filename='test_books.yaml',
        unit_num=1,
    )

    assert str(error).splitlines() == [
        'Runtime error',
        "    KeyError('state')",
        '    in "test_books.yaml"',
        '    on test unit 2',
        '         ...',
        '        name: greet',
        '        foo: bar',
    ]


def test_error_at_node() -> None:
    """Locate errors at YAML nodes."""
    node = yaml.compose('tests:\n  - title: nope\n')
    key, _ = node.value[0][1].value[0].value[0]

    error = UnknownFieldError.at('title', key)

    assert error.field == 'title'
    assert str(error).splitlines()[:2] == [
        "Unknown field 'title'",
        '    in "<unicode string>", line 2, column 5',
    ]

    mapping = ExpectedMappingError.at(node.value[0][1])
    assert mapping.message == 'Expected a mapping'
    assert isinstance(mapping, DSLSchemaError)


def test_error_from_yaml() -> None:
    """Wrap YAML parser errors."""
    with pytest.raises(yaml.MarkedYAMLError) as base:
        yaml.safe_load('name: "unclosed\n')

    error = DSLSchemaError.from_yaml_error(base.value)

    assert str(error).startswith('Invalid YAML')
    assert error.context is not None
    assert error.context.get('line_num') is not None
