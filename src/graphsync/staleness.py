"""Freshness predicate shared by the caches."""

from graphsync.duration import now_ms, parse_duration
from graphsync.types import Duration


def is_fresh(
    last_refreshed_at: int | None,
    window: Duration,
    extra_condition: bool = True,
    *,
    now: int | None = None,
) -> bool:
    """Check whether cached data can be used without a refetch.

    Data is fresh when it has been refreshed, the refresh happened less than
    ``window`` ago, and the cache-specific ``extra_condition`` holds.
    """
    if last_refreshed_at is None or not extra_condition:
        return False
    current = now if now is not None else now_ms()
    return current - last_refreshed_at < parse_duration(window)


def is_stale(
    last_refreshed_at: int | None,
    window: Duration,
    extra_condition: bool = True,
    *,
    now: int | None = None,
) -> bool:
    return not is_fresh(last_refreshed_at, window, extra_condition, now=now)
