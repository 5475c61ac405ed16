"""Tests for duration strings."""

from datetime import timedelta

import pytest

from pytest_strata.durations import parse_duration


@pytest.mark.parametrize('value, expected', (
    pytest.param('0', timedelta(), id='zero'),
    pytest.param('20ms', timedelta(milliseconds=20), id='milliseconds'),
    pytest.param('1.5s', timedelta(seconds=1.5), id='fraction'),
    pytest.param('2h45m', timedelta(hours=2, minutes=45), id='compound'),
    pytest.param('300us', timedelta(microseconds=300), id='microseconds'),
    pytest.param('300µs', timedelta(microseconds=300), id='micro sign'),
    pytest.param('-1m', timedelta(minutes=-1), id='negative'),
    pytest.param('+.5h', timedelta(minutes=30), id='leading dot'),
))
def test_parse_duration(value: str, expected: timedelta) -> None:
    """Parse valid duration strings."""
    assert parse_duration(value) == expected


@pytest.mark.parametrize('value', (
    pytest.param('', id='empty'),
    pytest.param('20', id='no unit'),
    pytest.param('1d', id='unknown unit'),
    pytest.param('10 ms', id='space'),
    pytest.param('ms', id='no number'),
    pytest.param('1s-', id='trailing sign'),
))
def test_invalid_duration(value: str) -> None:
    """Reject malformed duration strings."""
    with pytest.raises(ValueError, match=r'^invalid duration'):
        parse_duration(value)
