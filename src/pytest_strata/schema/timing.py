"""Timing policies shared by every test unit.

`Wait` delays a unit, `Timeout` bounds it. Both hold duration strings that
are validated when the scenario is loaded, so a scenario with a malformed
duration never exists.
"""

from datetime import timedelta

from pydantic import Field, field_validator

from pytest_strata.durations import parse_duration
from pytest_strata.models import SchemaModel


def _validate_duration(value: str) -> str:
    """Accept an empty string or a valid duration string."""
    if value:
        parse_duration(value)

    return value


class Wait(SchemaModel):
    """Delays applied before and after a test unit runs."""

    before: str = Field(
        default='',
        title='Wait before',
        description='Duration to wait before the test unit runs, for example `50ms`.',
    )

    after: str = Field(
        default='',
        title='Wait after',
        description='Duration to wait after the test unit ran, for example `1s`.',
    )

    @field_validator('before', 'after')
    @classmethod
    def check_durations(cls, value: str) -> str:
        """Reject malformed delays at load time."""
        return _validate_duration(value)

    @property
    def before_duration(self) -> timedelta:
        """Parsed `before` delay; zero when unset."""
        return parse_duration(self.before) if self.before else timedelta()

    @property
    def after_duration(self) -> timedelta:
        """Parsed `after` delay; zero when unset."""
        return parse_duration(self.after) if self.after else timedelta()


class Timeout(SchemaModel):
    """Deadline policy for a test unit."""

    after: str = Field(
        default='',
        title='Timeout',
        description='Duration the test unit should complete within, for example `20ms`.',
    )

    expected: bool = Field(
        default=False,
        title='Timeout expected',
        description=(
            'Whether exceeding the timeout is the intended outcome. '
            'Mostly useful for testing timeout handling itself.'
        ),
    )

    @field_validator('after')
    @classmethod
    def check_after(cls, value: str) -> str:
        """Reject a malformed timeout at load time."""
        return _validate_duration(value)

    @property
    def duration(self) -> timedelta:
        """Parsed `after` duration; zero when unset."""
        return parse_duration(self.after) if self.after else timedelta()
