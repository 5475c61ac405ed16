"""Plugin registry and entry point discovery.

A `PluginRegistry` is an explicitly constructed, thread-safe set of
plugins keyed by lowercased name. It keeps registration order, which is
the order the scenario parser tries plugins in.

Plugins and fixtures can be discovered from Python entry points. Loading
is defensive: individual failures do not interrupt discovery unless strict
mode is enabled.
"""

from logging import getLogger
from threading import RLock
from typing import TYPE_CHECKING
from warnings import warn

from pydantic import ValidationError

from pytest_strata.errors import PluginError, PluginWarning
from pytest_strata.extensions import Fixture, Plugin
from pytest_strata.names import normalize_name
from pytest_strata.schema import BASE_SPEC_FIELDS

if TYPE_CHECKING:
    from collections.abc import Iterator
    from importlib.metadata import EntryPoint

if TYPE_CHECKING:
    from pytest_strata.schema import Spec

logger = getLogger(__name__)

PLUGINS_GROUP = 'strata_plugins'
FIXTURES_GROUP = 'strata_fixtures'


def plugin_fields(shape: type['Spec']) -> tuple[frozenset[str], frozenset[str]]:
    """Return the plugin-specific document keys of a shape.

    Returns:
        A tuple of all plugin-specific keys and the required ones.
    """
    return (
        shape.document_fields() - BASE_SPEC_FIELDS,
        shape.required_fields() - BASE_SPEC_FIELDS,
    )


def describe_shape(shape: type['Spec']) -> str:
    """Render a shape as its name and plugin-specific keys.

    Required keys are marked with `*`.
    """
    fields, required = plugin_fields(shape)
    keys = ', '.join(
        f'{name}*' if name in required else name
        for name in sorted(fields)
    )

    return f'{shape.__name__}({keys})'


def overlapping(first: type['Spec'], second: type['Spec']) -> bool:
    """Check whether two shapes could both claim the same document node.

    A node holding exactly the required keys of both shapes is accepted
    by each of them when every key required by one is known to the other.
    """
    first_fields, first_required = plugin_fields(first)
    second_fields, second_required = plugin_fields(second)

    return first_required <= second_fields and second_required <= first_fields


class PluginRegistry:
    """Thread-safe set of plugins keyed by lowercased name.

    Attributes:
        strict_mode: If True, any plugin issue raises an error.
            If False, issues are emitted as warnings and processing continues.
    """

    def __init__(self, *, strict: bool = True) -> None:
        """Initialize an empty registry.

        Args:
            strict: Whether plugin issues raise instead of warning.
        """
        self.strict_mode = strict

        self._lock = RLock()
        self._entries: dict[str, Plugin] = {}

    def __len__(self) -> int:
        """Return the number of registered plugins."""
        with self._lock:
            return len(self._entries)

    def __contains__(self, name: object) -> bool:
        """Check whether a plugin named `name` is registered."""
        if not isinstance(name, str):
            return False

        with self._lock:
            return normalize_name(name) in self._entries

    def add(self, plugin: Plugin, entrypoint: 'EntryPoint | None' = None) -> None:
        """Register a plugin, replacing any plugin of the same name.

        A replaced plugin keeps its position in the resolution order.

        Args:
            plugin: Plugin to register.
            entrypoint: Entry point the plugin was loaded from, if any.
                Used for diagnostics.

        Raises:
            PluginError: If a shape of the plugin overlaps with a registered
                shape on strict mode.
        """
        lookup = normalize_name(plugin.name)

        with self._lock:
            for message in self.find_overlaps(plugin):
                if error := self.emit_plugin_issue(message, entrypoint):
                    raise error

            self._entries[lookup] = plugin

        logger.debug('registered plugin %r with %d shape(s)', plugin.name, len(plugin.specs))

    def remove(self, plugin: Plugin) -> None:
        """Delist a plugin by name. Unknown plugins are ignored."""
        with self._lock:
            self._entries.pop(normalize_name(plugin.name), None)

    def list(self) -> tuple[Plugin, ...]:
        """Return a snapshot of registered plugins in registration order."""
        with self._lock:
            return tuple(self._entries.values())

    def find_overlaps(self, plugin: Plugin) -> 'Iterator[str]':
        """Describe shapes of `plugin` that overlap with known shapes.

        Shapes of a plugin with the same name are not compared, since that
        plugin is about to be replaced.

        Yields:
            One message per overlapping pair of shapes.
        """
        lookup = normalize_name(plugin.name)

        known = [
            (other.name, shape)
            for name, other in self._entries.items()
            if name != lookup
            for shape in other.specs
        ]

        for shape in plugin.specs:
            for owner, other in known:
                if overlapping(shape, other):
                    yield (
                        f'Shape {shape.__name__!r} of plugin {plugin.name!r} '
                        f'overlaps with shape {other.__name__!r} of plugin {owner!r}'
                    )
            known.append((plugin.name, shape))

    def emit_plugin_issue(self, message: str,
                          entrypoint: 'EntryPoint | None' = None) -> Exception | None:
        """Emit a plugin warning or return the exception.

        Args:
            message: Warning message to emit.
            entrypoint: Entry point the plugin was loaded from, if applicable.

        Returns:
            PluginError on strict mode, otherwise `None`
                with producing a PluginWarning.
        """
        if self.strict_mode:
            return PluginError(message, entrypoint=entrypoint)

        warn(message, category=PluginWarning, stacklevel=3)

        return None

    def _load_entrypoint(self, entrypoint: 'EntryPoint') -> object | None:
        """Load an entry point, reporting failures as plugin issues.

        Raises:
            PluginError: If loading fails on strict mode.
        """
        try:
            return entrypoint.load()

        except ValidationError as base:
            if error := self.emit_plugin_issue(
                f'Failed to validate entrypoint {entrypoint.name!r}',
                entrypoint,
            ):
                raise error from base

        except Exception as base:
            if error := self.emit_plugin_issue(
                f'Failed to load entrypoint {entrypoint.name!r}',
                entrypoint,
            ):
                raise error from base

        return None

    def _load_plugin(self, entrypoint: 'EntryPoint') -> None:
        """Load and register a single plugin entry point.

        Raises:
            PluginError: If any loading issues occur on strict mode.
        """
        plugin = self._load_entrypoint(entrypoint)
        if plugin is None:
            return

        if not isinstance(plugin, Plugin):
            if error := self.emit_plugin_issue(
                f'Loaded from entrypoint {entrypoint.name!r} object is not a plugin',
                entrypoint,
            ):
                raise error
            return

        self.add(plugin, entrypoint)

    def load_plugins(self, group: str = PLUGINS_GROUP) -> None:
        """Discover plugins via entry points and register them.

        Args:
            group: Entry point group to discover plugins from.

        Raises:
            PluginError: If any loading issues occur on strict mode.
        """
        from importlib.metadata import entry_points  # noqa: PLC0415

        for entrypoint in entry_points().select(group=group):
            self._load_plugin(entrypoint)

    def load_fixtures(self, group: str = FIXTURES_GROUP) -> dict[str, Fixture]:
        """Discover fixtures via entry points.

        Each entry point name is the fixture name. It must reference a
        `Fixture` instance or a `Fixture` subclass instantiable without
        arguments.

        Args:
            group: Entry point group to discover fixtures from.

        Returns:
            Mapping of lowercased fixture names to fixtures.

        Raises:
            PluginError: If any loading issues occur on strict mode.
        """
        from importlib.metadata import entry_points  # noqa: PLC0415

        fixtures: dict[str, Fixture] = {}
        for entrypoint in entry_points().select(group=group):
            fixture = self._load_entrypoint(entrypoint)
            if isinstance(fixture, type) and issubclass(fixture, Fixture):
                fixture = fixture()

            if not isinstance(fixture, Fixture):
                if fixture is not None and (error := self.emit_plugin_issue(
                    f'Loaded from entrypoint {entrypoint.name!r} object is not a fixture',
                    entrypoint,
                )):
                    raise error
                continue

            fixtures[normalize_name(entrypoint.name)] = fixture

        return fixtures
