"""Tests for the plugin registry and entry point discovery."""

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

import pytest

from pytest_strata.core import PluginRegistry
from pytest_strata.core.registry import describe_shape, overlapping
from pytest_strata.errors import PluginError, PluginWarning
from pytest_strata.extensions import Plugin
from pytest_strata.schema import Spec

from tests.examples.plugins import (
    BarSpec,
    FooSpec,
    PriorRunSpec,
    RecordingFixture,
    bar,
    foo,
    prior_run,
)

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from pytest_mock import MockType


class TwinSpec(Spec):
    """Shape accepting every node `FooSpec` accepts."""

    foo: str
    extra: int = 0


class NarrowSpec(Spec):
    """Shape requiring a key `FooSpec` does not know."""

    foo: str
    narrow: int


twin = Plugin(name='twin', specs=[TwinSpec])


def test_add_and_list() -> None:
    """Keep plugins in registration order."""
    registry = PluginRegistry()

    registry.add(foo)
    registry.add(bar)
    registry.add(prior_run)

    assert registry.list() == (foo, bar, prior_run)
    assert len(registry) == 3
    assert 'PriorRun' in registry
    assert 'baz' not in registry
    assert 42 not in registry


def test_replace_and_remove() -> None:
    """Replace plugins by name in place and delist them."""
    registry = PluginRegistry()
    replacement = Plugin(name='FOO', specs=[FooSpec])

    registry.add(foo)
    registry.add(bar)
    registry.add(replacement)

    assert registry.list() == (replacement, bar)

    registry.remove(foo)
    registry.remove(foo)

    assert registry.list() == (bar,)


def test_list_is_snapshot() -> None:
    """Return a snapshot unaffected by later registrations."""
    registry = PluginRegistry()
    registry.add(foo)

    snapshot = registry.list()
    registry.add(bar)

    assert snapshot == (foo,)


@pytest.mark.parametrize('first, second, expected', (
    pytest.param(FooSpec, TwinSpec, True, id='optional extra key'),
    pytest.param(TwinSpec, FooSpec, True, id='symmetric'),
    pytest.param(FooSpec, FooSpec, True, id='same shape'),
    pytest.param(FooSpec, NarrowSpec, False, id='extra required key'),
    pytest.param(FooSpec, BarSpec, False, id='disjoint'),
))
def test_overlapping(first: type[Spec], second: type[Spec], expected: bool) -> None:  # noqa: FBT001
    """Detect shapes that could claim the same node."""
    assert overlapping(first, second) is expected


def test_overlap_strict() -> None:
    """Refuse a plugin overlapping with a registered one."""
    registry = PluginRegistry(strict=True)
    registry.add(foo)

    with pytest.raises(PluginError, match=r"^Shape 'TwinSpec' of plugin 'twin' overlaps"):
        registry.add(twin)

    assert registry.list() == (foo,)


def test_overlap_relaxed() -> None:
    """Warn about an overlapping plugin and register it anyway."""
    registry = PluginRegistry(strict=False)
    registry.add(foo)

    with pytest.warns(PluginWarning, match=r"with shape 'FooSpec' of plugin 'foo'"):
        registry.add(twin)

    assert registry.list() == (foo, twin)


def test_overlap_within_plugin() -> None:
    """Detect overlapping shapes of a single plugin."""
    registry = PluginRegistry()

    with pytest.raises(PluginError):
        registry.add(Plugin(name='clumsy', specs=[FooSpec, TwinSpec]))


def test_concurrent_add() -> None:
    """Register plugins from several threads."""
    registry = PluginRegistry()
    plugins = [Plugin(name=f'plugin{index}') for index in range(64)]

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(registry.add, plugins))

    assert len(registry) == 64
    assert {plugin.name for plugin in registry.list()} == {plugin.name for plugin in plugins}


def test_describe_shape() -> None:
    """Render plugin-specific keys of a shape."""
    assert describe_shape(PriorRunSpec) == 'PriorRunSpec(prior, state*)'
    assert describe_shape(FooSpec) == 'FooSpec(foo*)'


def test_load_plugins(patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Register plugins discovered from entry points."""
    patch_entrypoints(foo, bar)

    registry = PluginRegistry()
    registry.load_plugins()

    assert registry.list() == (foo, bar)


def test_load_plugins_empty(patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Ignore entry points of other groups."""
    patch_entrypoints(foo, group='other_plugins')

    registry = PluginRegistry()
    registry.load_plugins()

    assert registry.list() == ()


@pytest.mark.parametrize('strict', (True, False))
def test_load_invalid_plugin(strict: bool,  # noqa: FBT001
                             patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Report entry points not referencing a plugin."""
    patch_entrypoints(object())

    registry = PluginRegistry(strict=strict)

    if strict:
        with pytest.raises(PluginError, match=r'object is not a plugin'):
            registry.load_plugins()
    else:
        with pytest.warns(PluginWarning, match=r'object is not a plugin'):
            registry.load_plugins()

    assert registry.list() == ()


@pytest.mark.parametrize('strict', (True, False))
def test_load_failing_plugin(strict: bool,  # noqa: FBT001
                             patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Report entry points failing to load."""
    patch_entrypoints(foo, raises=ImportError('no module named nowhere'))

    registry = PluginRegistry(strict=strict)

    if strict:
        with pytest.raises(PluginError, match=r"^Failed to load entrypoint 'tests0'") as error:
            registry.load_plugins()
        assert isinstance(error.value.__cause__, ImportError)
        assert error.value.entrypoint is not None
    else:
        with pytest.warns(PluginWarning, match=r"^Failed to load entrypoint 'tests0'"):
            registry.load_plugins()

    assert registry.list() == ()


def test_load_fixtures(patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Discover fixture instances and fixture classes."""
    class Database(RecordingFixture):
        def __init__(self) -> None:
            super().__init__('db')

    api = RecordingFixture('api')
    patch_entrypoints(api, Database, group='strata_fixtures', names=('Books_API', 'books_db'))

    fixtures = PluginRegistry().load_fixtures()

    assert fixtures['books_api'] is api
    assert isinstance(fixtures['books_db'], Database)
    assert set(fixtures) == {'books_api', 'books_db'}


def test_load_invalid_fixture(patch_entrypoints: 'Callable[..., MockType]') -> None:
    """Report entry points not referencing a fixture."""
    patch_entrypoints('not a fixture', group='strata_fixtures')

    with pytest.warns(PluginWarning, match=r'object is not a fixture'):
        fixtures = PluginRegistry(strict=False).load_fixtures()

    assert fixtures == {}

    with pytest.raises(PluginError, match=r'object is not a fixture'):
        PluginRegistry(strict=True).load_fixtures()
