"""Pytest plugin collecting and running YAML test scenarios.

This module integrates `pytest-strata` with pytest by:
- registering custom command-line options;
- discovering scenario plugins and fixtures from entry points once per
  session and exposing them through a shared context;
- collecting YAML files as executable scenarios.

YAML files matching the pattern `test_*.yml` or `test_*.yaml` are
automatically collected, resolved and turned into pytest test items.
"""

import sys
from re import match
from typing import TYPE_CHECKING

from yaml import Loader, SafeLoader

from .spec import ScenarioFile

if TYPE_CHECKING:
    from pathlib import Path

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.nodes import Node


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest command-line options for pytest-strata.

    Args:
        parser: Pytest argument parser.
    """
    group = parser.getgroup('strata', 'YAML test scenarios')
    group.addoption(
        '--strata-unsafe-yaml',
        action='store_true',
        dest='strata_unsafe_yaml',
        default=False,
        help=(
            'Allow loading YAML files using the unsafe PyYAML Loader. '
            'This enables construction of arbitrary Python objects and '
            'should only be used with trusted scenarios.'
        ),
    )
    group.addoption(
        '--strata-relaxed',
        action='store_true',
        dest='strata_relaxed',
        default=False,
        help=(
            'Disable strict plugin validation. '
            'Plugin loading errors and overlapping test unit shapes '
            'are reported as warnings instead of failing the session.'
        ),
    )
    group.addoption(
        '--strata-debug',
        action='store_true',
        dest='strata_debug',
        default=False,
        help='Write engine debug output to standard error.',
    )


def pytest_configure(config: 'Config') -> None:
    """Configure pytest-strata integration.

    This hook discovers plugins and fixtures, then attaches a shared
    `ScenarioParser` and the root `Context` to the pytest configuration
    object as `config.strata_parser` and `config.strata_context`.

    Args:
        config: Pytest configuration object.
    """
    from pytest_strata.context import Context  # noqa: PLC0415
    from pytest_strata.core import PluginRegistry, ScenarioParser  # noqa: PLC0415
    from pytest_strata.settings import Settings  # noqa: PLC0415

    settings = Settings()

    loader: type[Loader | SafeLoader] = SafeLoader
    if config.getoption('strata_unsafe_yaml', default=False):
        loader = Loader

    strict = settings.strict and not config.getoption('strata_relaxed', default=False)
    registry = PluginRegistry(strict=strict)
    registry.load_plugins(settings.plugins_group)

    context = Context(
        plugins=registry.list(),
        fixtures=registry.load_fixtures(settings.fixtures_group),
    )
    if settings.debug or config.getoption('strata_debug', default=False):
        context = context.with_debug(sys.stderr)

    config.strata_parser = ScenarioParser(loader)  # type: ignore[attr-defined]
    config.strata_context = context  # type: ignore[attr-defined]


def pytest_collect_file(parent: 'Node', file_path: 'Path') -> ScenarioFile | None:
    """Collect YAML scenario files.

    Files matching the pattern `test_*.yml` or `test_*.yaml` are treated
    as scenarios and collected using `ScenarioFile`.

    Args:
        parent: Parent pytest collection node.
        file_path: Path to the file being considered.

    Returns:
        A `ScenarioFile` collector if the file matches the pattern, otherwise ``None``.
    """
    if match(r'^test_.+\.ya?ml$', file_path.name):
        return ScenarioFile.from_parent(
            parent,
            path=file_path,
        )

    return None
