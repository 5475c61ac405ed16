"""CLI utilities for pytest-strata plugins and scenarios.

Plugins and fixtures are discovered from the same entry point groups the
pytest integration uses, so the commands show what a test session sees.
"""

from pathlib import Path
from typing import TYPE_CHECKING

from click import Path as PathParam
from click import argument, echo, group, option
from click.exceptions import Exit
from yaml import Loader, SafeLoader

from pytest_strata.context import Context
from pytest_strata.core import PluginRegistry, ScenarioParser
from pytest_strata.core.registry import describe_shape
from pytest_strata.errors import DSLError
from pytest_strata.settings import Settings

if TYPE_CHECKING:
    from pytest_strata.extensions import Plugin

InputFilepath = PathParam(
    exists=True,
    dir_okay=False,
    readable=True,
    path_type=Path,
)


def _make_registry(relaxed: bool) -> PluginRegistry:  # noqa: FBT001
    """Create a registry holding every discovered plugin."""
    settings = Settings()

    registry = PluginRegistry(strict=settings.strict and not relaxed)
    registry.load_plugins(settings.plugins_group)

    return registry


def _describe_plugin(plugin: 'Plugin') -> str:
    """Render a plugin and its shapes for terminal output."""
    lines = [f'{plugin.name} (v{plugin.version})']
    if plugin.description:
        lines.append(f'  {plugin.description}')

    lines.extend(f'  - {describe_shape(shape)}' for shape in plugin.specs)

    return '\n'.join(lines)


@group(help='Command-line utilities for pytest-strata scenarios.')
def cli() -> None:
    """Root CLI group for pytest-strata tools."""
    return None


@cli.command(
    name='plugins',
    help='List discovered plugins and the test unit shapes they provide.',
)
@option(
    '--relaxed',
    is_flag=True,
    default=False,
    help='Report plugin loading issues as warnings instead of failing.',
)
def list_plugins(relaxed: bool) -> None:  # noqa: FBT001
    """Print every discovered plugin in resolution order."""
    registry = _make_registry(relaxed)

    for plugin in registry.list():
        echo(_describe_plugin(plugin))


@cli.command(
    name='validate',
    help='Resolve scenario files without running them.',
)
@option(
    '--relaxed',
    is_flag=True,
    default=False,
    help='Report plugin loading issues as warnings instead of failing.',
)
@option(
    '--unsafe-yaml',
    is_flag=True,
    default=False,
    help='Load scenarios using the unsafe PyYAML Loader.',
)
@argument(
    'files',
    type=InputFilepath,
    nargs=-1,
    required=True,
)
def validate(relaxed: bool, unsafe_yaml: bool, files: tuple[Path, ...]) -> None:  # noqa: FBT001
    """Resolve each file and report its test units or its error.

    Exits with status 1 if any file cannot be resolved.
    """
    registry = _make_registry(relaxed)
    context = Context(plugins=registry.list())
    parser = ScenarioParser(Loader if unsafe_yaml else SafeLoader)

    failed = False
    for path in files:
        try:
            scenario = parser.parse_file(path, context=context)

        except DSLError as error:
            failed = True
            echo(f'{path}: {error}', err=True)
            continue

        echo(f'{path}: ok, {len(scenario.tests)} test unit(s)')

    if failed:
        raise Exit(1)


if __name__ == '__main__':
    cli()
