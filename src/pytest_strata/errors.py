"""Core exception hierarchy.

This module defines the error and warning types used across the library.
Two taxonomies never overlap:

- parse-time errors (`DSLSchemaError` and subclasses) prevent a scenario
  from ever being built;
- runtime errors (`DSLRuntimeError` and subclasses) occur only while a
  scenario runs and are aggregated by the execution engine.

Assertion failures are neither: they are recorded by the reporting sink.
"""

from datetime import date, datetime, timedelta
from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import dump
from yaml.error import MarkedYAMLError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from importlib.metadata import EntryPoint
    from typing import Self

if TYPE_CHECKING:
    from pydantic import BaseModel, ValidationError
    from pydantic_core import ErrorDetails
    from yaml.nodes import Node

SNIPPET_ELLIPSIS = f' ...{linesep}'
SNIPPET_INDENT = 2

FORMAT_REPLACER = '<runtime object>'
FORMAT_FILENAME = '<unicode string>'
FORMAT_INDENT = 4

_MAPPINGS = (dict,)
_SCALARS = (date, datetime, timedelta, str, bytes, int, float, bool)
_SEQUENCES = (list, tuple, set, frozenset)


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Name of the source file where the error occurred.
    filename: str | None

    #: Zero-based line number in the source file.
    line_num: int | None
    #: Zero-based column number in the source file.
    column_num: int | None

    #: Zero-based index of the test unit where the error occurred.
    unit_num: int | None

    #: Underlying exception that triggered formatting.
    error: Exception | None
    #: Source snippet rendered by the YAML reader.
    snippet: str | None
    #: Element associated with the error.
    element: Any


class ErrorFormatter:
    """Utility class for formatting scenario errors.

    Produces human-readable messages with optional source location and
    a YAML snippet of the failing element.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        message += linesep
        message += cls.get_location_string(context, indent=FORMAT_INDENT)
        message += cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)

        return message.rstrip()

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format source and unit location information.

        Line, column and unit numbers are stored zero-based and
        displayed one-based.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted location string.
        """
        indent = cls._ensure_indent(indent)

        message = f'{indent}in "{context.get('filename') or FORMAT_FILENAME}"'
        if (line_num := context.get('line_num')) is not None:
            message += f', line {line_num + 1}'
            if (column_num := context.get('column_num')) is not None:
                message += f', column {column_num + 1}'
        message += linesep

        if (unit_num := context.get('unit_num')) is not None:
            message += f'{indent}on test unit {unit_num + 1}{linesep}'

        return message

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Generate a snippet illustrating the error context.

        A snippet produced by the YAML reader takes precedence over the
        serialized element.

        Args:
            context: Error context containing snippet or element data.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted multi-line snippet, or an empty string.
        """
        indent = cls._ensure_indent(indent)

        if snippet := context.get('snippet'):
            return cls._make_indent(snippet, indent) + linesep

        if (element := context.get('element')) is not None:
            snippet = f'{indent}{SNIPPET_ELLIPSIS}'
            snippet += cls._make_indent(cls._make_yaml(element), indent)
            return snippet + linesep

        return ''

    @classmethod
    def _filter_unsafe(cls, value: Any) -> Any:  # noqa: ANN401
        """Replace values YAML cannot represent safely with a placeholder."""
        if value is None or isinstance(value, _SCALARS):
            return value

        if isinstance(value, _MAPPINGS):
            return {
                key: cls._filter_unsafe(item)
                for key, item in value.items()
            }

        if isinstance(value, _SEQUENCES):
            return [cls._filter_unsafe(item) for item in value]

        return FORMAT_REPLACER

    @classmethod
    def _make_yaml(cls, value: Any) -> str:  # noqa: ANN401
        """Serialize a sanitized value to YAML."""
        return dump(
            cls._filter_unsafe(value),
            indent=SNIPPET_INDENT,
            sort_keys=False,
        )

    @staticmethod
    def _make_indent(value: str, indent: str) -> str:
        """Indent every non-blank line of a multi-line string."""
        return linesep.join(
            f'{indent}{line}'
            for line in value.splitlines()
            if line.strip()
        )

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation given as a string or a number of spaces."""
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class PluginWarning(UserWarning):
    """Warning emitted for non-fatal plugin-related issues.

    Used when a plugin cannot be loaded or conflicts with another one,
    but strict mode is disabled.
    """


class DSLError(Exception, ErrorFormatter):
    """Base exception for all pytest-strata errors."""

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context with optional location data.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)

    @classmethod
    def from_yaml_node(cls, message: str, node: 'Node',
                       error: Exception | None = None) -> 'Self':
        """Create an error instance located at a YAML node.

        Args:
            message: Human-readable error message.
            node: YAML node associated with the error.
            error: Optional underlying exception.

        Returns:
            An initialized error with location context.
        """
        return cls(message, context=node_context(node, error=error))


class PluginError(DSLError):
    """Error raised for fatal plugin-related failures.

    Raised in strict mode when a plugin entry point is invalid, fails to
    load, or declares test unit shapes that overlap with registered ones.
    """

    def __init__(self, message: str, *,
                 entrypoint: 'EntryPoint | None' = None) -> None:
        """Initialize a plugin error.

        Args:
            message: Human-readable error description.
            entrypoint: Optional entry point associated with the error.
        """
        self.entrypoint = entrypoint

        super().__init__(message)


class DSLSchemaError(DSLError):
    """Error raised when a scenario document cannot be resolved.

    Every parse-time failure is an instance of this class. No partial
    scenario exists once it is raised.
    """

    @classmethod
    def from_yaml_error(cls, error: MarkedYAMLError) -> 'Self':
        """Create a schema error from a YAML parsing failure.

        Args:
            error: Exception raised by the YAML parser.

        Returns:
            DSLSchemaError representing the YAML parsing failure.
        """
        mark = error.problem_mark
        error_context = ErrorContext(error=error)
        if mark is not None:
            error_context.update(
                filename=mark.name,
                line_num=mark.line,
                column_num=mark.column,
                snippet=mark.get_snippet(indent=0),
            )

        message = 'Invalid YAML'
        if error.problem:
            message += f'{linesep}{' ' * FORMAT_INDENT}{error.problem}'

        return cls(message, context=error_context)

    @classmethod
    def from_pydantic_error(cls, error: 'ValidationError', *,
                            node: 'Node | None' = None,
                            unit_num: int | None = None,
                            prefix: str | None = None) -> 'Self':
        """Create a schema error from a Pydantic validation failure.

        The first reported issue becomes the message; its location path
        is appended so the offending field is named.

        Args:
            error: ValidationError raised by Pydantic.
            node: YAML node that was validated, used for positions.
            unit_num: Index of the test unit being resolved.
            prefix: Optional text prepended to the message.

        Returns:
            DSLSchemaError representing the validation failure.
        """
        error_context = node_context(node, error=error) if node is not None else ErrorContext(error=error)
        if unit_num is not None:
            error_context['unit_num'] = unit_num

        message = 'Validation error'
        for item in error.errors(include_url=False, include_input=False):
            message = cls._describe_pydantic_issue(item)
            break

        if prefix:
            message = f'{prefix}: {message}'

        return cls(message, context=error_context)

    @staticmethod
    def _describe_pydantic_issue(issue: 'ErrorDetails') -> str:
        """Render a single Pydantic issue as `field.path: message`."""
        message = next(
            (line.strip() for line in issue['msg'].splitlines() if line.strip()),
            'Validation error',
        )

        if location := '.'.join(str(part) for part in issue['loc']):
            return f'{location}: {message}'

        return message


class UnknownFieldError(DSLSchemaError):
    """A document mapping contains a key nobody recognizes."""

    @classmethod
    def at(cls, field: str, node: 'Node') -> 'Self':
        """Create the error for `field` located at its key node."""
        error = cls.from_yaml_node(f'Unknown field {field!r}', node)
        error.field = field
        return error


class UnknownSpecError(DSLSchemaError):
    """No registered plugin shape claims a test unit node."""

    @classmethod
    def at(cls, node: 'Node', unit_num: int | None = None) -> 'Self':
        """Create the error located at the unclaimed node."""
        error = cls.from_yaml_node('No plugin could parse the test unit', node)
        if unit_num is not None and error.context is not None:
            error.context['unit_num'] = unit_num
        return error


class ExpectedNodeError(DSLSchemaError):
    """A document node has the wrong kind."""

    #: Human-readable node kind the document should have had.
    expected: str = 'node'

    @classmethod
    def at(cls, node: 'Node') -> 'Self':
        """Create the error located at the offending node."""
        return cls.from_yaml_node(f'Expected a {cls.expected}', node)


class ExpectedMappingError(ExpectedNodeError):
    """A mapping node was expected."""

    expected = 'mapping'


class ExpectedScalarError(ExpectedNodeError):
    """A scalar node was expected."""

    expected = 'scalar'


class ExpectedSequenceError(ExpectedNodeError):
    """A sequence node was expected."""

    expected = 'sequence'


class DSLRuntimeError(DSLError):
    """Error raised while a scenario runs.

    Plugins raise subclasses of this error, or attach one to a `Result`,
    to signal a failure that is not an assertion failure.
    """

    @classmethod
    def from_unit(cls, unit: 'BaseModel', *,
                  message: str | None = None,
                  filename: str | None = None,
                  unit_num: int | None = None) -> 'Self':
        """Create a runtime error from a test unit instance.

        Args:
            unit: A test unit model.
            message: An optional custom message.
            filename: An optional filename of source.
            unit_num: Position of the test unit.

        Returns:
            DSLRuntimeError describing the failing unit.
        """
        error_context = ErrorContext(
            filename=filename,
            unit_num=unit_num,
            element=unit.model_dump(
                exclude_none=True,
                exclude_unset=True,
            ),
        )

        error_message = 'Runtime error'
        if message:
            error_message += f'{linesep}{' ' * FORMAT_INDENT}{message}'

        return cls(error_message, context=error_context)


class RequiredFixtureError(DSLRuntimeError):
    """A scenario requires a fixture the context does not provide."""

    def __init__(self, fixture: str) -> None:
        """Initialize the error for the missing `fixture`."""
        self.fixture = fixture

        super().__init__(f'Required fixture {fixture!r} is missing')


class TimeoutExceededError(DSLRuntimeError):
    """A test unit ran past its deadline when no timeout was expected."""

    def __init__(self, after: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize the error for a timeout of `after`."""
        self.after = after

        super().__init__(f'Timeout exceeded: test unit did not complete within {after}',
                         context=context)


class RuntimeErrors(DSLRuntimeError):
    """Aggregate of the runtime errors raised during one scenario run."""

    def __init__(self, errors: 'list[Exception] | None' = None) -> None:
        """Initialize an aggregate, optionally seeded with errors."""
        self.errors: list[Exception] = list(errors or ())

        super().__init__('Runtime errors')

    def __str__(self) -> str:
        """Render every aggregated error, one block each."""
        message = f'{len(self.errors)} runtime error(s) occurred'
        for error in self.errors:
            lines = str(error).splitlines() or ['']
            message += f'{linesep}  - {lines[0]}'
            message += ''.join(f'{linesep}    {line}' for line in lines[1:])
        return message

    def __iter__(self) -> 'Iterator[Exception]':
        """Iterate over the aggregated errors in order."""
        return iter(self.errors)

    def __len__(self) -> int:
        """Return the number of aggregated errors."""
        return len(self.errors)

    @property
    def empty(self) -> bool:
        """Whether no runtime error was aggregated."""
        return not self.errors

    def append_if(self, error: Exception | None) -> None:
        """Append `error` unless it is `None`."""
        if error is not None:
            self.errors.append(error)

    def has(self, kind: type[BaseException]) -> bool:
        """Check whether any aggregated error is an instance of `kind`.

        Nested aggregates and chained causes are searched as well.
        """
        for error in self.errors:
            if isinstance(error, kind):
                return True
            if isinstance(error, RuntimeErrors) and error.has(kind):
                return True
            if isinstance(error.__cause__, kind):
                return True
        return False


def node_context(node: 'Node', error: Exception | None = None) -> ErrorContext:
    """Build an error context from a YAML node position."""
    mark = node.start_mark

    return ErrorContext(
        filename=mark.name,
        line_num=mark.line,
        column_num=mark.column,
        snippet=mark.get_snippet(indent=0),
        error=error,
    )
