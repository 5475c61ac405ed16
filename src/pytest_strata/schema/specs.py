"""Base shape of an executable test unit.

Plugins describe the test units they provide by subclassing `Spec` and
declaring their own fields. The common fields (`name`, `description`,
`wait`, `timeout`) are inherited, so they are validated by the same code
for every plugin.

Because `Spec` forbids extra fields, validating a document node against a
shape that does not declare one of its keys fails. The scenario parser
uses that rejection to find the one shape that owns a node.
"""

from typing import TYPE_CHECKING, Any

from pydantic import Field, PrivateAttr

from pytest_strata.models import DescribedMixin, SchemaModel
from pytest_strata.names import normalize_name

from .timing import Timeout, Wait

if TYPE_CHECKING:
    from pytest_strata.context import Context
    from pytest_strata.reporting import Reporter
    from pytest_strata.result import Result


class Defaults(dict[str, Any]):
    """Decoded per-plugin default configuration of a scenario.

    Keys are lowercased plugin names, values are whatever the plugin's
    defaults model produced. One instance is shared by the scenario and
    all of its test units.
    """

    def for_plugin(self, name: str) -> Any:  # noqa: ANN401
        """Return the decoded defaults of plugin `name`, if any."""
        return self.get(normalize_name(name))


class Spec(DescribedMixin, SchemaModel):
    """Base class for executable test units.

    Subclasses declare plugin-specific fields and implement `run`.
    The position of the unit inside its scenario and the scenario defaults
    are attached by the parser after validation and are not part of the
    document.
    """

    wait: Wait | None = Field(
        default=None,
        title='Wait',
        description='Delays applied around the test unit.',
    )

    timeout: Timeout | None = Field(
        default=None,
        title='Timeout',
        description='Deadline policy for the test unit.',
    )

    _index: int = PrivateAttr(default=0)
    _defaults: Defaults = PrivateAttr(default_factory=Defaults)

    def set_base(self, index: int, defaults: Defaults) -> None:
        """Attach the scenario position and shared defaults.

        Args:
            index: Zero-based position of the unit in the scenario.
            defaults: Defaults instance shared across the scenario.
        """
        self._index = index
        self._defaults = defaults

    @property
    def index(self) -> int:
        """Zero-based position of the unit in its scenario."""
        return self._index

    @property
    def defaults(self) -> Defaults:
        """Per-plugin defaults of the owning scenario."""
        return self._defaults

    @property
    def title(self) -> str:
        """Name of the unit, or its position when it has no name."""
        return self.name or str(self._index)

    def run(self, context: 'Context', reporter: 'Reporter') -> 'Result | None':
        """Execute the test unit.

        Assertion failures are recorded through `reporter` or returned in
        the result. Runtime errors are raised as `DSLRuntimeError` or
        attached to the returned result.

        Args:
            context: Context of this run, including prior-run data and,
                when the unit has a timeout, its deadline.
            reporter: Reporting scope of the enclosing scenario.

        Every plugin shape must override this method. The base
        implementation only raises.

        Returns:
            An optional result carrying data for later units.

        Raises:
            NotImplementedError: If the shape does not override it.
        """
        raise NotImplementedError


#: Document keys every test unit accepts, whatever its plugin.
BASE_SPEC_FIELDS = Spec.document_fields()
