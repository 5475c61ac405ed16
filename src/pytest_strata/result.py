"""Outcome of a single test unit run.

A `Result` serves two purposes:

1. returning a runtime error, if any, from the run. This error is always
   a `DSLRuntimeError`; failed assertions are not errors and travel
   separately as `failures`;
2. passing information about the run to later units. `data` is consumed
   by the engine and merged into the prior-run cache of the context given
   to every following unit. `vars` holds values a test author asked to
   capture from the unit's output.

Results are built from modifiers:

    return Result(with_data('response', response), with_failures(*errors))
"""

from collections.abc import Callable
from typing import Any

from pytest_strata.errors import DSLRuntimeError

type ResultModifier = Callable[['Result'], None]


class Result:
    """Value returned by `Spec.run`."""

    def __init__(self, *modifiers: ResultModifier) -> None:
        """Build a result and apply `modifiers` in order."""
        self._error: DSLRuntimeError | None = None
        self._failures: list[Exception] = []
        self._data: dict[str, Any] | None = None
        self._vars: dict[str, Any] | None = None

        for modifier in modifiers:
            modifier(self)

    def __repr__(self) -> str:
        """Debug representation."""
        return (
            f'{type(self).__name__}(error={self._error!r}, failures={self._failures!r}, '
            f'data={self._data!r}, vars={self._vars!r})'
        )

    @property
    def error(self) -> DSLRuntimeError | None:
        """Runtime error raised during the run, if any."""
        return self._error

    @property
    def has_runtime_error(self) -> bool:
        """Whether the run produced a runtime error."""
        return self._error is not None

    @property
    def data(self) -> dict[str, Any]:
        """Run data for later units; empty when none was set."""
        return self._data or {}

    @property
    def has_data(self) -> bool:
        """Whether any run data was set."""
        return self._data is not None

    @property
    def vars(self) -> dict[str, Any]:
        """Captured variables; empty when none was set."""
        return self._vars or {}

    @property
    def has_vars(self) -> bool:
        """Whether any variable was captured."""
        return self._vars is not None

    @property
    def failures(self) -> list[Exception]:
        """Assertion failures of the run."""
        return self._failures

    @property
    def failed(self) -> bool:
        """Whether any assertion failed."""
        return bool(self._failures)

    def set_error(self, error: DSLRuntimeError) -> None:
        """Set the runtime error of the result.

        Raises:
            TypeError: If `error` is not a `DSLRuntimeError`.
        """
        self._error = ensure_runtime_error(error)

    def set_data(self, key: str, value: Any) -> None:  # noqa: ANN401
        """Set a value in the run data."""
        if self._data is None:
            self._data = {}
        self._data[key] = value

    def set_var(self, key: str, value: Any) -> None:  # noqa: ANN401
        """Set a captured variable."""
        if self._vars is None:
            self._vars = {}
        self._vars[key] = value

    def set_failures(self, *failures: Exception) -> None:
        """Replace the assertion failures."""
        self._failures = list(failures)


def ensure_runtime_error(error: Exception) -> DSLRuntimeError:
    """Check that a plugin hands over a runtime error.

    A plugin attaching anything else would blur the line between runtime
    errors and assertion failures, so this is a programming error.

    Raises:
        TypeError: If `error` is not a `DSLRuntimeError`.
    """
    if not isinstance(error, DSLRuntimeError):
        raise TypeError(f'Expected {error!r} to be a DSLRuntimeError')

    return error


def with_runtime_error(error: DSLRuntimeError) -> ResultModifier:
    """Attach a runtime error.

    The check happens when the modifier is created, so a misbehaving
    plugin fails at the call site.

    Raises:
        TypeError: If `error` is not a `DSLRuntimeError`.
    """
    ensure_runtime_error(error)

    def modifier(result: Result) -> None:
        result.set_error(error)

    return modifier


def with_data(key: str, value: Any) -> ResultModifier:  # noqa: ANN401
    """Set one run data entry."""
    def modifier(result: Result) -> None:
        result.set_data(key, value)

    return modifier


def with_var(key: str, value: Any) -> ResultModifier:  # noqa: ANN401
    """Set one captured variable."""
    def modifier(result: Result) -> None:
        result.set_var(key, value)

    return modifier


def with_failures(*failures: Exception) -> ResultModifier:
    """Set the assertion failures."""
    def modifier(result: Result) -> None:
        result.set_failures(*failures)

    return modifier
