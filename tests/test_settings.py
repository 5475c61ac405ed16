"""Tests for runtime settings."""

import pytest

from pytest_strata.settings import Settings


def test_defaults() -> None:
    """Use strict discovery from the default groups."""
    settings = Settings()

    assert settings.strict
    assert not settings.debug
    assert settings.plugins_group == 'strata_plugins'
    assert settings.fixtures_group == 'strata_fixtures'


def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Read settings from prefixed environment variables."""
    monkeypatch.setenv('STRATA_STRICT', 'false')
    monkeypatch.setenv('STRATA_DEBUG', '1')
    monkeypatch.setenv('STRATA_PLUGINS_GROUP', 'custom_plugins')
    monkeypatch.setenv('UNRELATED_SETTING', 'ignored')

    settings = Settings()

    assert not settings.strict
    assert settings.debug
    assert settings.plugins_group == 'custom_plugins'
