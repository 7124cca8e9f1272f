"""In-memory storage adapter (async only)."""

import asyncio
import copy
from collections import OrderedDict
from typing import Any


class AsyncMemoryAdapter:
    """Async in-memory storage adapter with optional LRU eviction.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, max_items: int | None = None) -> None:
        self._data: OrderedDict[str, Any] = OrderedDict()
        self._max_items = max_items
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            if key not in self._data:
                return None
            self._data.move_to_end(key)  # LRU touch
            return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            self._data[key] = copy.deepcopy(value)
            self._data.move_to_end(key)
            if self._max_items and len(self._data) > self._max_items:
                self._data.popitem(last=False)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._data.clear()

    async def disconnect(self) -> None:
        """Disconnect from the storage backend (no-op for memory)."""
        pass
