"""Base adapter protocol for persistent storage backends."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AsyncStorageAdapter(Protocol):
    """Async key-value storage for JSON-compatible values."""

    async def get(self, key: str) -> Any | None:
        """Get a stored value by key."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous one."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a stored value."""
        ...

    async def clear(self) -> None:
        """Delete every value stored by this adapter."""
        ...

    async def disconnect(self) -> None:
        """Disconnect from the storage backend."""
        ...
