"""Persistent stores for the gatekeeper and profile caches."""

from __future__ import annotations

from typing import Protocol, TypeVar

from graphsync.adapters.base import AsyncStorageAdapter
from graphsync.models import Gatekeeper, GatekeeperList, Profile

T = TypeVar("T")


class PersistentStore(Protocol[T]):
    """Read/write access to the persisted copy of one cached value."""

    async def read(self) -> T | None:
        ...

    async def write(self, value: T) -> None:
        ...


class GatekeeperStore:
    """Gatekeepers persisted per application identifier."""

    def __init__(self, adapter: AsyncStorageAdapter, app_id: str) -> None:
        self._adapter = adapter
        self._app_id = app_id

    @property
    def key(self) -> str:
        return f"gatekeepers:{self._app_id}"

    async def read(self) -> GatekeeperList | None:
        data = await self._adapter.get(self.key)
        if data is None:
            return None
        return [Gatekeeper.from_dict(item) for item in data]

    async def write(self, value: GatekeeperList) -> None:
        await self._adapter.set(self.key, [gatekeeper.to_dict() for gatekeeper in value])


class UserProfileStore:
    """The last known user profile."""

    key = "user_profile"

    def __init__(self, adapter: AsyncStorageAdapter) -> None:
        self._adapter = adapter

    async def read(self) -> Profile | None:
        data = await self._adapter.get(self.key)
        if data is None:
            return None
        return Profile.from_dict(data)

    async def write(self, value: Profile) -> None:
        await self._adapter.set(self.key, value.to_dict())
