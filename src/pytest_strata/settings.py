"""Runtime settings resolved from the environment.

Every setting can be provided as an environment variable prefixed with
`STRATA_`, for example `STRATA_DEBUG=1`. Command-line options of the
pytest integration take precedence over the environment.
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from pytest_strata.models import SettingsModel


class Settings(SettingsModel):
    """Runtime configuration of plugin discovery and debug output."""

    model_config = SettingsConfigDict(
        env_prefix='STRATA_',
        frozen=True,
        extra='ignore',
    )

    strict: bool = Field(
        default=True,
        title='Strict mode',
        description=(
            'Raise on plugin loading failures and overlapping test unit '
            'shapes instead of emitting warnings.'
        ),
    )

    debug: bool = Field(
        default=False,
        title='Debug output',
        description='Write engine debug output to standard error.',
    )

    plugins_group: str = Field(
        default='strata_plugins',
        title='Plugins entry point group',
        description='Entry point group plugins are discovered from.',
    )

    fixtures_group: str = Field(
        default='strata_fixtures',
        title='Fixtures entry point group',
        description='Entry point group fixtures are discovered from.',
    )
