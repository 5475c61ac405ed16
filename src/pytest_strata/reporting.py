"""Structured test reporting sink.

A `Reporter` is a tree of named scopes. Each scope records assertion
failures; a fatal failure additionally aborts the scope it was raised in,
leaving sibling and parent scopes running.

    with reporter.subtest('scenario') as scope:
        scope.fail('status code is 500')
        scope.fatal('service is gone')  # leaves the `with` block

The pytest integration turns a failed reporter into a failed test item.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from logging import getLogger
from typing import NoReturn

logger = getLogger(__name__)

#: Separator between scope names in failure paths.
PATH_SEPARATOR = '/'


class FatalFailure(BaseException):  # noqa: N818
    """Unwinds the scope a fatal failure was recorded in.

    Derives from `BaseException` so that code catching `Exception` inside
    a test unit does not swallow it.
    """

    def __init__(self, reporter: 'Reporter', message: str) -> None:
        """Initialize the failure for `reporter`."""
        self.reporter = reporter
        self.message = message

        super().__init__(message)


class Reporter:
    """Named, nestable reporting scope."""

    def __init__(self, name: str = '', parent: 'Reporter | None' = None) -> None:
        """Initialize a scope.

        Args:
            name: Scope name.
            parent: Enclosing scope, if any.
        """
        self.name = name
        self.parent = parent

        self.children: list[Reporter] = []
        self.messages: list[str] = []
        self.aborted = False

    def __repr__(self) -> str:
        """Debug representation."""
        return f'{type(self).__name__}({self.path!r}, failed={self.failed})'

    @property
    def path(self) -> str:
        """Names of this scope and its ancestors joined by `/`."""
        names = []
        scope: Reporter | None = self
        while scope is not None:
            if scope.name:
                names.append(scope.name)
            scope = scope.parent
        return PATH_SEPARATOR.join(reversed(names))

    @property
    def failed(self) -> bool:
        """Whether this scope or any nested scope recorded a failure."""
        return bool(self.messages) or any(child.failed for child in self.children)

    @contextmanager
    def subtest(self, name: str) -> Iterator['Reporter']:
        """Open a nested scope.

        A fatal failure recorded in the nested scope ends the `with`
        block; it does not propagate further.

        Args:
            name: Name of the nested scope.

        Yields:
            The nested reporter.
        """
        child = type(self)(name, parent=self)
        self.children.append(child)

        logger.debug('enter scope %s', child.path)
        try:
            yield child

        except FatalFailure as failure:
            if failure.reporter is not child:
                raise
            child.aborted = True

        finally:
            logger.debug('leave scope %s (failed=%s)', child.path, child.failed)

    def run(self, name: str, function: Callable[['Reporter'], object]) -> bool:
        """Run `function` in a nested scope.

        Returns:
            True if the nested scope recorded no failure.
        """
        with self.subtest(name) as child:
            function(child)

        return not child.failed

    def fail(self, message: str) -> None:
        """Record an assertion failure and continue."""
        logger.debug('failure in %s: %s', self.path, message)
        self.messages.append(message)

    def fatal(self, message: str) -> NoReturn:
        """Record an assertion failure and abort this scope.

        Raises:
            FatalFailure: Always; caught by the `subtest` that opened
                this scope.
        """
        self.fail(message)
        raise FatalFailure(self, message)

    def failures(self) -> Iterator[tuple[str, str]]:
        """Iterate over `(scope path, message)` pairs, depth first."""
        for message in self.messages:
            yield self.path, message

        for child in self.children:
            yield from child.failures()

    def summary(self) -> str:
        """Render every recorded failure, one per line."""
        return '\n'.join(
            f'{path or "<root>"}: {message}'
            for path, message in self.failures()
        )
