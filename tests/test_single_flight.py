"""Tests for the single-flight cache."""

import asyncio
import gc
import weakref

import pytest

from graphsync import (
    AsyncMemoryAdapter,
    Credential,
    FetchFailedError,
    FetchResult,
    LoggingBehavior,
    SingleFlightCache,
)
from graphsync.stores import PersistentStore

from .conftest import ONE_HOUR, FakeClock, FakeLogger


class DictStore:
    """Persistent store over a memory adapter for plain dict values."""

    def __init__(self, adapter: AsyncMemoryAdapter) -> None:
        self._adapter = adapter

    async def read(self) -> dict | None:
        return await self._adapter.get("value")

    async def write(self, value: dict) -> None:
        await self._adapter.set("value", value)


class CountingFetch:
    def __init__(self) -> None:
        self.count = 0
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None

    async def __call__(self, credential: Credential | None) -> dict:
        self.count += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return {"count": self.count}


@pytest.fixture
def fetch() -> CountingFetch:
    return CountingFetch()


@pytest.fixture
def store(async_adapter: AsyncMemoryAdapter) -> PersistentStore[dict]:
    return DictStore(async_adapter)


@pytest.fixture
def changes() -> list[tuple[dict | None, dict]]:
    return []


@pytest.fixture
def cache(
    fetch: CountingFetch,
    store: PersistentStore[dict],
    changes: list,
    logger: FakeLogger,
    clock: FakeClock,
) -> SingleFlightCache[dict]:
    return SingleFlightCache(
        name="test",
        window="1h",
        fetch=fetch,
        store=store,
        on_change=lambda previous, current: changes.append((previous, current)),
        logger=logger,
        clock=clock,
    )


class TestEnsureFresh:
    async def test_miss_fetches_and_stores(
        self, cache: SingleFlightCache[dict], fetch: CountingFetch, store, clock
    ) -> None:
        result = await cache.ensure_fresh()

        assert result == FetchResult(value={"count": 1})
        assert fetch.count == 1
        assert cache.value == {"count": 1}
        assert cache.entry.last_refreshed_at == clock.now
        assert not cache.entry.is_fetch_in_flight
        assert await store.read() == {"count": 1}

    async def test_fresh_value_skips_fetch(
        self, cache: SingleFlightCache[dict], fetch: CountingFetch
    ) -> None:
        await cache.ensure_fresh()
        completions: list[FetchResult[dict]] = []

        result = await cache.ensure_fresh(on_complete=completions.append)

        assert fetch.count == 1
        assert result.value == {"count": 1}
        assert completions == [result]

    async def test_stale_after_window(
        self, cache: SingleFlightCache[dict], fetch: CountingFetch, clock: FakeClock
    ) -> None:
        await cache.ensure_fresh()
        clock.advance(ONE_HOUR - 1)
        await cache.ensure_fresh()
        assert fetch.count == 1

        clock.advance(1)
        result = await cache.ensure_fresh()
        assert fetch.count == 2
        assert result.value == {"count": 2}

    async def test_concurrent_callers_share_one_fetch(
        self, cache: SingleFlightCache[dict], fetch: CountingFetch
    ) -> None:
        fetch.gate = asyncio.Event()

        tasks = [asyncio.create_task(cache.ensure_fresh()) for _ in range(5)]
        await asyncio.sleep(0.01)

        assert cache.entry.is_fetch_in_flight
        assert fetch.count == 1

        fetch.gate.set()
        results = await asyncio.gather(*tasks)

        assert fetch.count == 1
        assert all(result.value == {"count": 1} for result in results)
        assert not cache.entry.is_fetch_in_flight

    async def test_change_callback_gets_previous_and_current(
        self, cache: SingleFlightCache[dict], clock: FakeClock, changes: list
    ) -> None:
        await cache.ensure_fresh()
        clock.advance(ONE_HOUR)
        await cache.ensure_fresh()

        assert changes == [(None, {"count": 1}), ({"count": 1}, {"count": 2})]


class TestFailures:
    async def test_failure_keeps_state_and_logs_once(
        self,
        cache: SingleFlightCache[dict],
        fetch: CountingFetch,
        clock: FakeClock,
        logger: FakeLogger,
        changes: list,
    ) -> None:
        await cache.ensure_fresh()
        refreshed_at = cache.entry.last_refreshed_at
        clock.advance(ONE_HOUR)
        fetch.error = RuntimeError("network down")

        result = await cache.ensure_fresh()

        assert not result.ok
        assert isinstance(result.error, FetchFailedError)
        assert isinstance(result.error.underlying, RuntimeError)
        assert cache.value == {"count": 1}
        assert cache.entry.last_refreshed_at == refreshed_at
        assert logger.messages_for(LoggingBehavior.NETWORK_REQUESTS) == ["network down"]
        assert len(changes) == 1

    async def test_failure_is_not_raised(
        self, cache: SingleFlightCache[dict], fetch: CountingFetch
    ) -> None:
        fetch.error = RuntimeError("boom")
        completions: list[FetchResult[dict]] = []

        result = await cache.ensure_fresh(on_complete=completions.append)

        assert completions == [result]
        with pytest.raises(FetchFailedError):
            result.unwrap()

    async def test_next_call_retries_after_failure(
        self, cache: SingleFlightCache[dict], fetch: CountingFetch
    ) -> None:
        fetch.error = RuntimeError("boom")
        await cache.ensure_fresh()
        fetch.error = None

        result = await cache.ensure_fresh()

        assert fetch.count == 2
        assert result.value == {"count": 2}

    async def test_persist_failure_keeps_memory_value(
        self, fetch: CountingFetch, logger: FakeLogger, clock: FakeClock
    ) -> None:
        class BrokenStore:
            async def read(self) -> dict | None:
                return None

            async def write(self, value: dict) -> None:
                raise OSError("disk full")

        cache: SingleFlightCache[dict] = SingleFlightCache(
            name="broken", window="1h", fetch=fetch, store=BrokenStore(),
            logger=logger, clock=clock,
        )

        result = await cache.ensure_fresh()

        assert result.ok
        assert cache.value == {"count": 1}
        assert logger.messages_for(LoggingBehavior.DEVELOPER_ERRORS) == [
            "Failed to persist broken: disk full"
        ]


class TestExtraCondition:
    async def test_extra_condition_forces_refetch(
        self, fetch: CountingFetch, logger: FakeLogger, clock: FakeClock
    ) -> None:
        matches = {"ok": True}
        cache: SingleFlightCache[dict] = SingleFlightCache(
            name="cond",
            window="1d",
            fetch=fetch,
            extra_condition=lambda value, credential: matches["ok"],
            logger=logger,
            clock=clock,
        )
        await cache.ensure_fresh()
        await cache.ensure_fresh()
        assert fetch.count == 1

        matches["ok"] = False
        await cache.ensure_fresh()
        assert fetch.count == 2


class TestUpdateAndSeed:
    async def test_update_replaces_persists_and_reports(
        self, cache: SingleFlightCache[dict], store, changes: list, clock: FakeClock
    ) -> None:
        await cache.update({"manual": True})

        assert cache.value == {"manual": True}
        assert cache.entry.last_refreshed_at == clock.now
        assert await store.read() == {"manual": True}
        assert changes == [(None, {"manual": True})]

    async def test_seed_loads_without_freshness(
        self, cache: SingleFlightCache[dict], store, fetch: CountingFetch
    ) -> None:
        await store.write({"persisted": True})

        seeded = await cache.seed()

        assert seeded == {"persisted": True}
        assert cache.value == {"persisted": True}
        assert cache.entry.last_refreshed_at is None
        assert not cache.is_fresh()

    async def test_seed_keeps_memory_value_when_store_is_empty(
        self, cache: SingleFlightCache[dict], async_adapter: AsyncMemoryAdapter
    ) -> None:
        await cache.ensure_fresh()
        await async_adapter.clear()

        assert await cache.seed() == {"count": 1}


class TestLifetime:
    async def test_closed_cache_ignores_late_completion(
        self, cache: SingleFlightCache[dict], fetch: CountingFetch, changes: list
    ) -> None:
        fetch.gate = asyncio.Event()
        task = asyncio.create_task(cache.ensure_fresh())
        await asyncio.sleep(0.01)

        cache.close()
        fetch.gate.set()
        result = await task

        assert result.value == {"count": 1}
        assert cache.value is None
        assert changes == []
        assert not cache.entry.is_fetch_in_flight

    async def test_fetch_does_not_keep_cache_alive(
        self, fetch: CountingFetch, logger: FakeLogger, clock: FakeClock
    ) -> None:
        fetch.gate = asyncio.Event()
        cache: SingleFlightCache[dict] = SingleFlightCache(
            name="gone", window="1h", fetch=fetch, logger=logger, clock=clock
        )
        task = asyncio.create_task(cache.ensure_fresh())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        del task

        ref = weakref.ref(cache)
        del cache
        gc.collect()
        assert ref() is None

        fetch.gate.set()
        await asyncio.sleep(0.01)
        assert fetch.count == 1
        assert logger.captured == []

    async def test_cancelled_caller_does_not_cancel_fetch(
        self, cache: SingleFlightCache[dict], fetch: CountingFetch
    ) -> None:
        fetch.gate = asyncio.Event()
        task = asyncio.create_task(cache.ensure_fresh())
        await asyncio.sleep(0.01)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        fetch.gate.set()
        result = await cache.ensure_fresh()

        assert fetch.count == 1
        assert result.value == {"count": 1}

    async def test_cancelled_joined_caller_does_not_affect_others(
        self, cache: SingleFlightCache[dict], fetch: CountingFetch
    ) -> None:
        fetch.gate = asyncio.Event()
        first = asyncio.create_task(cache.ensure_fresh())
        second = asyncio.create_task(cache.ensure_fresh())
        await asyncio.sleep(0.01)

        second.cancel()
        with pytest.raises(asyncio.CancelledError):
            await second
        fetch.gate.set()

        assert (await first).value == {"count": 1}
        assert fetch.count == 1


class TestJoinedFetch:
    async def test_joined_caller_rechecks_extra_condition(
        self, fetch: CountingFetch, logger: FakeLogger, clock: FakeClock
    ) -> None:
        fetch.gate = asyncio.Event()
        cache: SingleFlightCache[dict] = SingleFlightCache(
            name="owner",
            window="1d",
            fetch=fetch,
            extra_condition=lambda value, credential: (
                value is not None and credential is not None
                and value["count"] == int(credential.user_id)
            ),
            logger=logger,
            clock=clock,
        )
        one = Credential(token_string="a", app_id="123", user_id="1")
        two = Credential(token_string="b", app_id="123", user_id="2")

        first = asyncio.create_task(cache.ensure_fresh(one))
        await asyncio.sleep(0.01)
        second = asyncio.create_task(cache.ensure_fresh(two))
        await asyncio.sleep(0.01)
        assert fetch.count == 1

        fetch.gate.set()
        first_result, second_result = await asyncio.gather(first, second)

        assert first_result.value == {"count": 1}
        assert second_result.value == {"count": 2}
        assert fetch.count == 2

    async def test_joined_caller_gets_failure_without_refetch(
        self, cache: SingleFlightCache[dict], fetch: CountingFetch
    ) -> None:
        fetch.gate = asyncio.Event()
        fetch.error = RuntimeError("offline")
        tasks = [asyncio.create_task(cache.ensure_fresh()) for _ in range(3)]
        await asyncio.sleep(0.01)

        fetch.gate.set()
        results = await asyncio.gather(*tasks)

        assert fetch.count == 1
        assert all(not result.ok for result in results)
