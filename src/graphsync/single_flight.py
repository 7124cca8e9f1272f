"""Staleness-gated cache that runs at most one remote fetch at a time.

Each ``SingleFlightCache`` owns one ``CacheEntry``. ``ensure_fresh()`` returns
the cached value while it is fresh, otherwise starts a fetch in a background
task. Callers arriving while that fetch is in flight share its outcome instead
of issuing another request.

The fetch always runs to completion: cancelling a waiting caller does not
cancel the fetch, and the task keeps only a weak reference to the cache, so a
discarded (or closed) cache is never mutated by a late completion.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, Generic, TypeVar

from graphsync.config import LoggingBehavior
from graphsync.credentials import Credential
from graphsync.duration import now_ms, parse_duration
from graphsync.errors import FetchFailedError
from graphsync.logger import Logger, StructlogLogger
from graphsync.staleness import is_fresh
from graphsync.stores import PersistentStore
from graphsync.types import CacheEntry, Clock, Duration, FetchResult

T = TypeVar("T")

Fetch = Callable[[Credential | None], Awaitable[T]]
ExtraCondition = Callable[[T | None, Credential | None], bool]
ChangeHandler = Callable[[T | None, T], None]
CompletionHandler = Callable[[FetchResult[T]], None]

# Keeps fetch tasks alive while nothing else references them
_background_tasks: set[asyncio.Task[None]] = set()


class SingleFlightCache(Generic[T]):
    """Async cache with a freshness window and single-flight refreshes."""

    def __init__(
        self,
        *,
        name: str,
        window: Duration,
        fetch: Fetch[T],
        store: PersistentStore[T] | None = None,
        extra_condition: ExtraCondition[T] | None = None,
        timestamp_of: Callable[[T], int] | None = None,
        on_change: ChangeHandler[T] | None = None,
        on_fetch_finished: CompletionHandler[T] | None = None,
        logger: Logger | None = None,
        clock: Clock = now_ms,
    ) -> None:
        """Create a cache.

        Args:
            name: Label used in log messages
            window: How long a refreshed value stays fresh
            fetch: Coroutine function performing the remote fetch
            store: Persistent mirror written after every update
            extra_condition: Cache-specific freshness condition, given the
                cached value and the caller's credential
            timestamp_of: Derives the refresh time from a value; by default
                the clock time of the update is used
            on_change: Called with (previous, current) after every update
            on_fetch_finished: Called with the outcome of every fetch
            logger: Receives fetch failures
            clock: Millisecond clock
        """
        self.name = name
        self._window = parse_duration(window)
        self._fetch = fetch
        self._store = store
        self._extra_condition = extra_condition
        self._timestamp_of = timestamp_of
        self._on_change = on_change
        self._on_fetch_finished = on_fetch_finished
        self._logger: Logger = logger or StructlogLogger()
        self._clock = clock

        self._entry: CacheEntry[T] = CacheEntry()
        self._in_flight: asyncio.Future[FetchResult[T]] | None = None
        self._attached = True
        self._lock = asyncio.Lock()

    @property
    def entry(self) -> CacheEntry[T]:
        """Snapshot of the current state."""
        return self._entry

    @property
    def value(self) -> T | None:
        return self._entry.value

    @property
    def is_attached(self) -> bool:
        return self._attached

    def is_fresh(self, credential: Credential | None = None) -> bool:
        extra = (
            self._extra_condition(self._entry.value, credential)
            if self._extra_condition is not None
            else True
        )
        return is_fresh(
            self._entry.last_refreshed_at,
            self._window,
            extra,
            now=self._clock(),
        )

    async def ensure_fresh(
        self,
        credential: Credential | None = None,
        on_complete: CompletionHandler[T] | None = None,
    ) -> FetchResult[T]:
        """Return the cached value, refreshing it first when stale.

        Fetch errors are returned in the result (and passed to
        ``on_complete``), never raised.

        A caller that joins a fetch started for another credential gets that
        fetch's value only if it satisfies the extra condition for its own
        credential; otherwise it starts (or joins) the next fetch.
        """
        while True:
            async with self._lock:
                future = self._in_flight
                joined = future is not None
                if future is None:
                    if self.is_fresh(credential):
                        result: FetchResult[T] = FetchResult(value=self._entry.value)
                        break
                    future = self._start_fetch(credential)

            result = await _wait_for(future)
            if not joined or not result.ok or self._accepts(result.value, credential):
                break

        if on_complete is not None:
            on_complete(result)
        return result

    async def update(self, value: T) -> None:
        """Replace the value outright, persist it, and report the change."""
        async with self._lock:
            previous = self._entry.value
            self._entry = replace(
                self._entry,
                value=value,
                last_refreshed_at=self._refresh_time(value),
            )
            await self._persist(value)
            if self._on_change is not None:
                self._on_change(previous, value)

    async def seed(self) -> T | None:
        """Load the persisted value, keeping the in-memory one if none exists.

        Seeding does not make the cache fresh unless ``timestamp_of`` says the
        persisted value is recent.
        """
        if self._store is None:
            return self._entry.value
        persisted = await self._store.read()
        async with self._lock:
            if persisted is not None:
                last_refreshed_at = (
                    self._timestamp_of(persisted)
                    if self._timestamp_of is not None
                    else self._entry.last_refreshed_at
                )
                self._entry = replace(
                    self._entry,
                    value=persisted,
                    last_refreshed_at=last_refreshed_at,
                )
            return self._entry.value

    def close(self) -> None:
        """Detach the cache; fetches still in flight will not touch its state."""
        self._attached = False

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _accepts(self, value: T | None, credential: Credential | None) -> bool:
        if self._extra_condition is None:
            return True
        return self._extra_condition(value, credential)

    def _refresh_time(self, value: T) -> int:
        if self._timestamp_of is not None:
            return self._timestamp_of(value)
        return self._clock()

    def _start_fetch(self, credential: Credential | None) -> asyncio.Future[FetchResult[T]]:
        # Caller holds self._lock
        loop = asyncio.get_running_loop()
        future: asyncio.Future[FetchResult[T]] = loop.create_future()
        self._in_flight = future
        self._entry = replace(self._entry, is_fetch_in_flight=True)

        task = loop.create_task(
            _run_fetch(weakref.ref(self), self._fetch(credential), future)
        )
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        return future

    async def _persist(self, value: T) -> None:
        if self._store is None:
            return
        try:
            await self._store.write(value)
        except Exception as exc:
            # The in-memory value stays authoritative
            self._logger.log(
                LoggingBehavior.DEVELOPER_ERRORS,
                f"Failed to persist {self.name}: {exc}",
            )

    async def _complete(self, result: FetchResult[T]) -> None:
        async with self._lock:
            self._in_flight = None
            self._entry = replace(self._entry, is_fetch_in_flight=False)
            if not self._attached:
                return

            if self._on_fetch_finished is not None:
                self._on_fetch_finished(result)

            if result.error is not None:
                self._logger.log(LoggingBehavior.NETWORK_REQUESTS, result.error.message)
                return

            value = result.value
            previous = self._entry.value
            self._entry = CacheEntry(
                value=value,
                last_refreshed_at=self._refresh_time(value),  # type: ignore[arg-type]
            )
            await self._persist(value)  # type: ignore[arg-type]
            if self._on_change is not None:
                self._on_change(previous, value)  # type: ignore[arg-type]

    def _abandon(self) -> None:
        self._in_flight = None
        self._entry = replace(self._entry, is_fetch_in_flight=False)


async def _wait_for(future: asyncio.Future[FetchResult[T]]) -> FetchResult[T]:
    """Await the shared outcome through a waiter owned by this caller.

    Cancelling the caller cancels only its waiter. The relay callback is
    removed again so the shared future never references a cancelled caller.
    """
    waiter: asyncio.Future[FetchResult[T]] = asyncio.get_running_loop().create_future()

    def relay(done: asyncio.Future[FetchResult[T]]) -> None:
        if waiter.done():
            return
        if done.cancelled():
            waiter.cancel()
        else:
            waiter.set_result(done.result())

    future.add_done_callback(relay)
    try:
        return await waiter
    except asyncio.CancelledError:
        future.remove_done_callback(relay)
        del relay, waiter, future
        raise


async def _run_fetch(
    owner: weakref.ref[SingleFlightCache[Any]],
    fetch: Awaitable[Any],
    future: asyncio.Future[FetchResult[Any]],
) -> None:
    """Run one fetch to completion and publish its outcome to ``future``."""
    try:
        value = await fetch
    except asyncio.CancelledError:
        cache = owner()
        if cache is not None:
            cache._abandon()
        future.cancel()
        raise
    except Exception as exc:
        result: FetchResult[Any] = FetchResult(error=FetchFailedError(exc))
    else:
        result = FetchResult(value=value)

    try:
        cache = owner()
        if cache is not None:
            await cache._complete(result)
    finally:
        if not future.done():
            future.set_result(result)
