"""Layered execution context.

A `Context` carries the state shared by every call made while a scenario
is resolved and run: the debug writer, the plugin list, the fixture table,
the prior-run data cache and an optional deadline.

Contexts are immutable. Each `with_*`, `register_*` and `store_*` method
returns a new layer that shadows its parent; the parent stays untouched
and remains valid for whoever still holds it.
"""

import time
from collections.abc import Mapping
from datetime import timedelta
from types import MappingProxyType
from typing import Any

from pydantic import Field, field_validator

from pytest_strata.extensions import Fixture, Plugin
from pytest_strata.models import SchemaModel
from pytest_strata.names import normalize_name


class DeadlineExceeded(TimeoutError):  # noqa: N818
    """The deadline of a context passed."""


class Context(SchemaModel):
    """Immutable overlay of shared run state."""

    debug: Any = Field(
        default=None,
        title='Debug writer',
        description='Writable text stream receiving debug output, if any.',
    )

    plugins: tuple[Plugin, ...] = Field(
        default=(),
        title='Plugins',
        description='Plugins used to resolve test units, in resolution order.',
    )

    fixtures: Mapping[str, Fixture] = Field(
        default_factory=dict,
        validate_default=True,
        title='Fixtures',
        description='Fixtures available to scenarios, keyed by lowercased name.',
    )

    prior_run: Mapping[str, Any] = Field(
        default_factory=dict,
        validate_default=True,
        title='Prior run data',
        description='Data produced by earlier test units of the running scenario.',
    )

    deadline: float | None = Field(
        default=None,
        title='Deadline',
        description='Monotonic clock value after which the context is expired.',
    )

    @field_validator('fixtures', 'prior_run', mode='after')
    @classmethod
    def freeze_mapping(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        """Expose mappings read-only so layers never share mutable state."""
        return MappingProxyType(dict(value))

    def _layer(self, **changes: Any) -> 'Context':  # noqa: ANN401
        """Build a new layer with some fields replaced."""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        return type(self).model_validate({**values, **changes})

    def with_debug(self, writer: Any) -> 'Context':  # noqa: ANN401
        """Return a layer writing debug output to `writer`.

        Any object with a `write(str)` method works, for example
        `sys.stdout` or an open log file.
        """
        return self._layer(debug=writer)

    def with_plugins(self, plugins: 'tuple[Plugin, ...] | list[Plugin]') -> 'Context':
        """Return a layer with the plugin list replaced."""
        return self._layer(plugins=tuple(plugins))

    def with_fixtures(self, fixtures: Mapping[str, Fixture]) -> 'Context':
        """Return a layer with the fixture table replaced."""
        return self._layer(fixtures={
            normalize_name(name): fixture
            for name, fixture in fixtures.items()
        })

    def register_fixture(self, name: str, fixture: Fixture) -> 'Context':
        """Return a layer with one named fixture merged into the table."""
        return self._layer(fixtures={
            **self.fixtures,
            normalize_name(name): fixture,
        })

    def register_plugin(self, plugin: Plugin) -> 'Context':
        """Return a layer with `plugin` appended to the plugin list.

        Registering a plugin whose name is already known returns the
        context unchanged.
        """
        lookup = normalize_name(plugin.name)
        if any(normalize_name(known.name) == lookup for known in self.plugins):
            return self

        return self._layer(plugins=(*self.plugins, plugin))

    def store_prior_run(self, data: Mapping[str, Any]) -> 'Context':
        """Return a layer with `data` merged over the prior-run cache."""
        return self._layer(prior_run={**self.prior_run, **data})

    def with_timeout(self, timeout: float | timedelta) -> 'Context':
        """Return a layer expiring `timeout` seconds from now.

        An earlier deadline inherited from the parent is kept.
        """
        if isinstance(timeout, timedelta):
            timeout = timeout.total_seconds()

        deadline = time.monotonic() + timeout
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)

        return self._layer(deadline=deadline)

    @property
    def expired(self) -> bool:
        """Whether the deadline of this context has passed."""
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> float | None:
        """Return the seconds left before the deadline, if there is one."""
        if self.deadline is None:
            return None

        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """Raise `DeadlineExceeded` if the deadline has passed."""
        if self.expired:
            raise DeadlineExceeded('context deadline exceeded')

    def sleep(self, seconds: float) -> None:
        """Sleep for `seconds`, waking up early at the deadline.

        Raises:
            DeadlineExceeded: If the deadline is reached while sleeping.
        """
        seconds = max(0.0, seconds)
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            time.sleep(remaining)
            raise DeadlineExceeded('context deadline exceeded')

        time.sleep(seconds)

    def timed_out(self) -> bool:
        """Tell whether a call made with this context ran out of time.

        Only the deadline of this context decides. A `TimeoutError` raised
        by the call for any other reason is an ordinary runtime error.
        """
        return self.expired
