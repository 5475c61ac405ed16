"""Fixture contract.

A fixture is an external named resource a scenario depends on, such as a
running service or a seeded database. The engine starts the fixtures a
scenario requires before its first test unit runs and stops them, in
reverse order, when the scenario finishes.
"""

from abc import ABC, abstractmethod


class Fixture(ABC):
    """Base class for named resources with a start/stop lifecycle."""

    @abstractmethod
    def start(self) -> None:
        """Acquire the resource."""

    @abstractmethod
    def stop(self) -> None:
        """Release the resource.

        Called exactly once for every successful `start`, even when the
        scenario fails or aborts.
        """
