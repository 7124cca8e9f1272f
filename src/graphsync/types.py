"""Core types for the graphsync library."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from graphsync.errors import FetchFailedError

T = TypeVar("T")

# Duration type alias
Duration = str | int  # "30s", "1h", "1d" or milliseconds

# Returns a Unix timestamp in milliseconds
Clock = Callable[[], int]

# Graph notification payloads are plain mappings keyed by the *_KEY constants
UserInfo = dict[str, Any]


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """Snapshot of a single-flight cache's state."""

    value: T | None = None
    last_refreshed_at: int | None = None  # Unix timestamp ms
    is_fetch_in_flight: bool = False


@dataclass(frozen=True, slots=True)
class FetchResult(Generic[T]):
    """Outcome of a cache refresh: either a value or the error that prevented it."""

    value: T | None = None
    error: FetchFailedError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, raising the captured error on failure."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
