"""Duration parsing and clock helpers."""

import re
import time
from datetime import timedelta

from graphsync.types import Duration

_DURATION_PATTERN = re.compile(r"^(\d+)(ms|s|m|h|d)$")
_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}


def parse_duration(duration: Duration | timedelta) -> int:
    """Parse a duration to milliseconds.

    Accepts "30s"-style strings, a ``timedelta``, or an int that is already
    in milliseconds.
    """
    if isinstance(duration, timedelta):
        return int(duration.total_seconds() * 1000)
    if isinstance(duration, int):
        if duration < 0:
            raise ValueError(f"Invalid duration: {duration!r}")
        return duration

    match = _DURATION_PATTERN.match(duration)
    if not match:
        raise ValueError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return int(value) * _UNITS[unit]


def now_ms() -> int:
    """Current wall clock time as a Unix timestamp in milliseconds."""
    return int(time.time() * 1000)
