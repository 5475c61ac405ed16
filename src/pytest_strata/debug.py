"""Debug output written to the context's debug writer.

Messages are prefixed with `(strata) ` and always mirrored to the
`pytest_strata.debug` logger, so debug output is available through
logging configuration even when no writer is set.
"""

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pytest_strata.context import Context

logger = getLogger(__name__)

PREFIX = '(strata) '


def printf(context: 'Context', message: str, *args: object) -> None:
    """Write a %-formatted message to the context's debug writer."""
    if args:
        message = message % args

    logger.debug(message.rstrip('\n'))

    if context.debug is None:
        return

    if not message.startswith(PREFIX):
        message = PREFIX + message

    context.debug.write(message)


def println(context: 'Context', message: str, *args: object) -> None:
    """Write a %-formatted message ensuring it ends with a newline."""
    if not message.endswith('\n'):
        message += '\n'

    printf(context, message, *args)
