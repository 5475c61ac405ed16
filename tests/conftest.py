"""Tests configurations and fixtures."""

from importlib.metadata import EntryPoint, EntryPoints
from typing import TYPE_CHECKING

import pytest
import yaml

from pytest_strata.context import Context
from pytest_strata.core import ScenarioParser

from tests.examples.plugins import bar, breaker, failer, foo, prior_run, sleeper

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from pytest_mock import MockerFixture, MockType


@pytest.fixture
def loader() -> type[yaml.SafeLoader]:
    """Provide an isolated YAML SafeLoader class for tests.

    Creates a dedicated subclass of `yaml.SafeLoader` to ensure that
    YAML constructors or resolvers registered during a test do not leak
    into other tests or affect global loader state.

    Returns:
        A subclass of `yaml.SafeLoader` suitable for isolated parsing.
    """
    class Loader(yaml.SafeLoader):
        pass

    return Loader


@pytest.fixture
def parser(loader: type[yaml.SafeLoader]) -> ScenarioParser:
    """Provide a scenario parser using the isolated loader."""
    return ScenarioParser(loader)


@pytest.fixture
def context() -> Context:
    """Provide a context holding every example plugin."""
    return Context(plugins=(foo, bar, failer, prior_run, sleeper, breaker))


@pytest.fixture
def patch_entrypoints(mocker: 'MockerFixture') -> 'Callable[..., MockType]':
    """Provide a factory for mocking `importlib.metadata.entry_points`.

    Returns a callable that patches `entry_points()` to simulate
    discovery of objects in the given entry point group.

    The returned factory allows configuring:
    - successfully loadable objects, named after their position
      unless a name is given,
    - or an exception raised during loading,
    - or an empty entry point list.

    This fixture is intended for testing plugin and fixture discovery
    without relying on real installed entry points.
    """
    def patch(*objects: object, raises: Exception | None = None,
              group: str = 'strata_plugins',
              names: tuple[str, ...] = ()) -> 'MockType':
        """Patch `entry_points` with a controlled configuration.

        Args:
            objects: Objects to be returned by `EntryPoint.load()`.
                If empty, no entry points are registered.
            raises: Exception to raise when `EntryPoint.load()` is called.
                Used to simulate load failures.
            group: Entry point group of every registered entry point.
            names: Entry point names, in the order of `objects`.

        Returns:
            A mock patch object produced by `mocker.patch` that replaces
            `importlib.metadata.entry_points` for the duration of the test.
        """
        entrypoints = []
        for index, obj in enumerate(objects):
            ep = mocker.Mock(spec=EntryPoint)
            ep.group = group
            ep.name = names[index] if index < len(names) else f'tests{index}'
            ep.value = f'tests.examples:{ep.name}'
            ep.matches.side_effect = lambda _ep=ep, **params: all(
                getattr(_ep, key) == value for key, value in params.items()
            )
            ep.load.return_value = obj
            if raises is not None:
                ep.load.side_effect = raises
            entrypoints.append(ep)

        return mocker.patch(
            'importlib.metadata.entry_points',
            return_value=EntryPoints(entrypoints),
        )

    return patch
