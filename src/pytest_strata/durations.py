"""Duration strings used by waits and timeouts.

A duration is a possibly signed sequence of decimal numbers, each with an
optional fraction and a unit suffix, such as `300ms`, `1.5s` or `2h45m`.
Valid units are `ns`, `us` (or `µs`), `ms`, `s`, `m` and `h`. A bare `0`
is also accepted.
"""

from datetime import timedelta
from re import compile as regexp

#: Pattern for a complete duration string.
_DURATION_PATTERN = regexp(r'^[-+]?((\d+(\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h))+$')

#: Pattern for a single duration component.
_COMPONENT_PATTERN = regexp(r'(?P<value>\d+(\.\d*)?|\.\d+)(?P<unit>ns|us|µs|μs|ms|s|m|h)')

#: Units for duration, in seconds.
_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'μs': 1e-6,
    'ms': 1e-3,
    's': 1,
    'm': 60,
    'h': 3_600,
}


def parse_duration(value: str) -> timedelta:
    """Parse a duration string.

    Args:
        value: Duration string, for example `20ms`.

    Returns:
        The parsed duration.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    if value == '0':
        return timedelta()

    if not _DURATION_PATTERN.match(value):
        raise ValueError(f'invalid duration {value!r}')

    seconds = sum(
        float(match['value']) * _DURATION_UNITS[match['unit']]
        for match in _COMPONENT_PATTERN.finditer(value)
    )

    if value.startswith('-'):
        seconds = -seconds

    return timedelta(seconds=seconds)
