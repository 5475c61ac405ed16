"""Scenario document parser.

This module turns a YAML scenario document into a `Scenario` holding
concrete test units provided by plugins.

The parser works on the composed node tree rather than on constructed
Python data, so every error can point at the offending node. Resolution
of a test unit probes plugin shapes in plugin order and shape order: a
shape rejecting an unknown top-level key does not own the node, the
first shape that validates does.
"""

from logging import getLogger
from os.path import basename, expandvars
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from yaml import SafeLoader
from yaml.error import MarkedYAMLError
from yaml.nodes import MappingNode, ScalarNode, SequenceNode

from pytest_strata.context import Context
from pytest_strata.errors import (
    DSLError,
    DSLSchemaError,
    ExpectedMappingError,
    ExpectedScalarError,
    ExpectedSequenceError,
    UnknownFieldError,
    UnknownSpecError,
)
from pytest_strata.names import normalize_name
from pytest_strata.schema import Defaults

from .scenario import Scenario

if TYPE_CHECKING:
    from io import TextIOBase
    from os import PathLike

if TYPE_CHECKING:
    from yaml import BaseLoader
    from yaml.nodes import Node

if TYPE_CHECKING:
    from pytest_strata.extensions import Plugin
    from pytest_strata.schema import Spec

logger = getLogger(__name__)

STR_TAG = 'tag:yaml.org,2002:str'
NULL_TAG = 'tag:yaml.org,2002:null'

#: Keys whose values are never expanded against the environment.
LITERAL_KEYS = frozenset({'name'})

#: Test unit keys that must hold mappings, whatever the plugin.
MAPPING_SPEC_FIELDS = ('wait', 'timeout')


def expand_environment(node: 'Node', loader: 'BaseLoader', *, literal: bool = False) -> None:
    """Expand environment variables in string scalars, in place.

    `$VAR` and `${VAR}` references are replaced with values from the
    process environment; unset variables are left as written. Values of
    `name` keys are kept literal. Plain scalars are re-resolved after
    expansion, so an expanded number decodes as a number.

    Args:
        node: Root of the node tree to expand.
        loader: Loader whose resolver re-resolves plain scalars.
        literal: Whether this node must be kept literal.
    """
    if isinstance(node, ScalarNode):
        if literal or node.tag != STR_TAG:
            return

        value = expandvars(node.value)
        if value == node.value:
            return

        node.value = value
        if node.style is None:
            node.tag = loader.resolve(ScalarNode, value, (True, False))

    elif isinstance(node, SequenceNode):
        for item in node.value:
            expand_environment(item, loader)

    elif isinstance(node, MappingNode):
        for key, value in node.value:
            expand_environment(value, loader, literal=(
                isinstance(key, ScalarNode) and key.value in LITERAL_KEYS
            ))


class ScenarioParser:
    """YAML scenario parser resolving test units through plugins.

    The parser is stateless apart from the loader class, so one instance
    can parse any number of documents with different plugin sets.
    """

    def __init__(self, loader: type['BaseLoader'] = SafeLoader) -> None:
        """Initialize the parser.

        Args:
            loader: PyYAML loader class used to compose and construct nodes.
        """
        self.loader = loader

    def parse(self, content: 'TextIOBase | str', *,
              path: 'str | PathLike[str] | None' = None,
              context: Context | None = None) -> Scenario:
        """Parse a scenario document.

        Args:
            content: YAML content as a string or file-like object.
            path: Path of the document, used for naming and error locations.
            context: Context providing the plugins to resolve units with.

        Returns:
            The resolved scenario.

        Raises:
            DSLSchemaError: If the document is not valid YAML, is malformed,
                or holds a test unit no plugin claims.
        """
        if context is None:
            context = Context()

        loader = self.loader(content)
        if path is not None:
            loader.name = str(path)

        try:
            try:
                node = loader.get_single_node()

            except MarkedYAMLError as base:
                raise DSLSchemaError.from_yaml_error(base) from base

            if node is not None:
                expand_environment(node, loader)

            return self.build(node, loader, path=path, plugins=context.plugins)

        finally:
            loader.dispose()

    def parse_file(self, path: 'str | PathLike[str]', *,
                   context: Context | None = None) -> Scenario:
        """Parse a scenario document stored in a file.

        Raises:
            DSLSchemaError: If the document cannot be resolved.
        """
        with open(path, encoding='utf-8') as content:
            return self.parse(content, path=path, context=context)

    def build(self, node: 'Node | None', loader: 'BaseLoader', *,
              path: 'str | PathLike[str] | None',
              plugins: tuple['Plugin', ...]) -> Scenario:
        """Build a scenario from the root node of a document.

        Args:
            node: Root node, or None for an empty document.
            loader: Loader used to construct values.
            path: Path of the document.
            plugins: Plugins in resolution order.

        Returns:
            The resolved scenario.

        Raises:
            DSLSchemaError: If the document cannot be resolved.
        """
        fields: dict[str, Any] = {}
        defaults_node = tests_node = None

        if node is not None and not (isinstance(node, ScalarNode) and node.tag == NULL_TAG):
            if not isinstance(node, MappingNode):
                raise ExpectedMappingError.at(node)

            for key_node, value_node in node.value:
                match self.key(key_node):
                    case 'name' | 'description' as key:
                        fields[key] = self.text(value_node)
                    case 'require':
                        fields['require'] = self.texts(value_node)
                    case 'defaults':
                        defaults_node = value_node
                    case 'tests':
                        tests_node = value_node
                    case key:
                        raise UnknownFieldError.at(key, key_node)

        if path is not None:
            fields['path'] = str(path)
            if not fields.get('name'):
                fields['name'] = basename(path)

        defaults = Defaults()
        if defaults_node is not None:
            defaults = self.parse_defaults(defaults_node, loader, plugins)

        tests: tuple[Spec, ...] = ()
        if tests_node is not None:
            tests = self.parse_tests(tests_node, loader, plugins, defaults)

        scenario = Scenario(defaults=defaults, tests=tests, **fields)
        logger.debug('resolved scenario %r with %d test unit(s)', scenario.title, len(tests))

        return scenario

    def parse_defaults(self, node: 'Node', loader: 'BaseLoader',
                       plugins: tuple['Plugin', ...]) -> Defaults:
        """Decode the `defaults` mapping with each plugin's defaults model.

        Sections naming no registered plugin are ignored. A plugin without
        a defaults model keeps its raw section.

        Raises:
            DSLSchemaError: If a section fails validation.
        """
        if self.is_null(node):
            return Defaults()

        if not isinstance(node, MappingNode):
            raise ExpectedMappingError.at(node)

        sections = {
            normalize_name(self.key(key_node)): value_node
            for key_node, value_node in node.value
        }

        defaults = Defaults()
        for plugin in plugins:
            lookup = normalize_name(plugin.name)
            if (section := sections.get(lookup)) is None:
                continue

            data = self.construct(section, loader)
            if plugin.defaults is None:
                defaults[lookup] = data
                continue

            try:
                defaults[lookup] = plugin.defaults.model_validate(data or {})

            except ValidationError as base:
                raise DSLSchemaError.from_pydantic_error(
                    base,
                    node=section,
                    prefix=f'Invalid defaults for plugin {plugin.name!r}',
                ) from base

        return defaults

    def parse_tests(self, node: 'Node', loader: 'BaseLoader',
                    plugins: tuple['Plugin', ...],
                    defaults: Defaults) -> tuple['Spec', ...]:
        """Resolve every element of the `tests` sequence.

        Raises:
            DSLSchemaError: If any element cannot be resolved.
        """
        if self.is_null(node):
            return ()

        if not isinstance(node, SequenceNode):
            raise ExpectedSequenceError.at(node)

        return tuple(
            self.parse_unit(index, item, loader, plugins, defaults)
            for index, item in enumerate(node.value)
        )

    def parse_unit(self, index: int, node: 'Node', loader: 'BaseLoader',
                   plugins: tuple['Plugin', ...],
                   defaults: Defaults) -> 'Spec':
        """Resolve one test unit node to the shape that claims it.

        Args:
            index: Position of the node in the `tests` sequence.
            node: Test unit node.
            loader: Loader used to construct values.
            plugins: Plugins in resolution order.
            defaults: Scenario defaults shared by all units.

        Returns:
            The test unit, bound to its index and the scenario defaults.

        Raises:
            UnknownSpecError: If no shape claims the node.
            DSLSchemaError: If the claiming shape rejects a value.
        """
        if not isinstance(node, MappingNode):
            raise ExpectedMappingError.at(node)

        self.check_base(node)
        data = self.construct(node, loader)

        for plugin in plugins:
            for shape in plugin.specs:
                try:
                    unit = shape.model_validate(data)

                except ValidationError as base:
                    if self.is_rejection(base):
                        continue
                    raise DSLSchemaError.from_pydantic_error(
                        base,
                        node=node,
                        unit_num=index,
                        prefix=f'Invalid {shape.__name__!r} of plugin {plugin.name!r}',
                    ) from base

                unit.set_base(index, defaults)
                logger.debug('test unit %d resolved by plugin %r as %s',
                             index, plugin.name, shape.__name__)
                return unit

        raise UnknownSpecError.at(node, unit_num=index)

    def check_base(self, node: MappingNode) -> None:
        """Check the shape of common test unit fields.

        Raises:
            ExpectedScalarError: If a key is not a scalar.
            ExpectedMappingError: If `wait` or `timeout` is not a mapping.
        """
        for key_node, value_node in node.value:
            key = self.key(key_node)
            if key in MAPPING_SPEC_FIELDS and not (
                isinstance(value_node, MappingNode) or self.is_null(value_node)
            ):
                raise ExpectedMappingError.at(value_node)

    @staticmethod
    def is_rejection(error: ValidationError) -> bool:
        """Tell whether a shape rejected a node for holding unknown keys."""
        return any(
            issue['type'] == 'extra_forbidden' and len(issue['loc']) == 1
            for issue in error.errors(include_url=False, include_input=False)
        )

    @staticmethod
    def is_null(node: 'Node') -> bool:
        """Tell whether a node is an explicit or empty null scalar."""
        return isinstance(node, ScalarNode) and node.tag == NULL_TAG

    @staticmethod
    def key(node: 'Node') -> str:
        """Return the text of a mapping key.

        Raises:
            ExpectedScalarError: If the key is not a scalar.
        """
        if not isinstance(node, ScalarNode):
            raise ExpectedScalarError.at(node)

        return node.value

    @classmethod
    def text(cls, node: 'Node') -> str | None:
        """Return the raw text of a scalar, or None for null.

        Raises:
            ExpectedScalarError: If the node is not a scalar.
        """
        if not isinstance(node, ScalarNode):
            raise ExpectedScalarError.at(node)

        if cls.is_null(node):
            return None

        return node.value

    @classmethod
    def texts(cls, node: 'Node') -> tuple[str, ...]:
        """Return the raw texts of a sequence of scalars.

        Raises:
            ExpectedSequenceError: If the node is not a sequence.
            ExpectedScalarError: If an item is not a scalar.
        """
        if cls.is_null(node):
            return ()

        if not isinstance(node, SequenceNode):
            raise ExpectedSequenceError.at(node)

        return tuple(cls.key(item) for item in node.value)

    @staticmethod
    def construct(node: 'Node', loader: 'BaseLoader') -> Any:  # noqa: ANN401
        """Construct Python data from a node.

        Raises:
            DSLSchemaError: If the loader cannot construct the node.
        """
        try:
            return loader.construct_document(node)

        except MarkedYAMLError as base:
            raise DSLSchemaError.from_yaml_error(base) from base

        except DSLError:
            raise

        except Exception as base:
            raise DSLSchemaError.from_yaml_node('Unexpected error', node, base) from base
