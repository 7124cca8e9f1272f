"""Redis storage adapter."""

from __future__ import annotations

import json
from typing import Any


class AsyncRedisAdapter:
    """Async Redis storage adapter storing JSON-encoded values."""

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        prefix: str = "graphsync",
    ) -> None:
        self._client = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        """Generate the full Redis key."""
        return f"{self._prefix}:store:{key}"

    async def get(self, key: str) -> Any | None:
        data = await self._client.get(self._key(key))
        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)

    async def set(self, key: str, value: Any) -> None:
        # Persisted values back cold starts, so they never expire
        await self._client.set(self._key(key), json.dumps(value))

    async def delete(self, key: str) -> None:
        await self._client.delete(self._key(key))

    async def clear(self) -> None:
        """Clear every key under this adapter's prefix."""
        # Use SCAN to find and delete all store keys
        cursor: int = 0
        pattern = f"{self._prefix}:store:*"
        while True:
            result = await self._client.scan(cursor, match=pattern, count=100)
            cursor = result[0]
            keys = result[1]
            if keys:
                await self._client.delete(*keys)
            if cursor == 0:
                break

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()
