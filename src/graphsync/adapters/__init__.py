"""Persistent storage adapters for graphsync (async only)."""

from contextlib import suppress

from graphsync.adapters.base import AsyncStorageAdapter
from graphsync.adapters.memory import AsyncMemoryAdapter

# Optional adapters - only available when dependencies are installed
with suppress(ImportError):
    from graphsync.adapters.redis import AsyncRedisAdapter

__all__ = [
    "AsyncMemoryAdapter",
    "AsyncRedisAdapter",
    "AsyncStorageAdapter",
]
