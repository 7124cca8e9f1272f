"""Gatekeeper (feature flag) synchronization."""

from __future__ import annotations

from collections.abc import Mapping
from functools import partial
from types import MappingProxyType

from graphsync.adapters.base import AsyncStorageAdapter
from graphsync.adapters.memory import AsyncMemoryAdapter
from graphsync.config import Settings, get_settings
from graphsync.credentials import Credential, CredentialProvider
from graphsync.duration import now_ms
from graphsync.errors import AppIDRequiredError
from graphsync.logger import Logger, StructlogLogger
from graphsync.models import GatekeeperList, gatekeepers_from_graph
from graphsync.paths import Gatekeepers
from graphsync.request import SYSTEM_REQUEST_FLAGS, GraphRequest
from graphsync.single_flight import SingleFlightCache
from graphsync.stores import GatekeeperStore
from graphsync.transport import GraphTransport
from graphsync.types import Clock, FetchResult


class GatekeeperService:
    """Fetches and stores gatekeepers for the configured application id.

    Gatekeepers are kept per application id, both in memory and in the
    persistent store, so different app identities never share flags. They are
    fetched from the server the first time they are requested after start-up
    and again whenever they are older than ``settings.gatekeeper_ttl``.
    """

    def __init__(
        self,
        transport: GraphTransport,
        *,
        adapter: AsyncStorageAdapter | None = None,
        settings: Settings | None = None,
        credential_provider: CredentialProvider | None = None,
        logger: Logger | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._transport = transport
        self._adapter = adapter or AsyncMemoryAdapter()
        self._settings = settings or get_settings()
        self._credential_provider = credential_provider
        self._logger = logger or StructlogLogger(self._settings)
        self._clock = clock
        self._gatekeepers: dict[str, GatekeeperList] = {}
        self._caches: dict[str, SingleFlightCache[GatekeeperList]] = {}

        self.is_requery_finished_for_app_start = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def gatekeepers(self) -> Mapping[str, GatekeeperList]:
        """Last known gatekeepers keyed by application id."""
        return MappingProxyType(self._gatekeepers)

    @property
    def timestamp(self) -> int | None:
        """When the current app's gatekeepers were last fetched (ms)."""
        cache = self._caches.get(self._app_id())
        return cache.entry.last_refreshed_at if cache is not None else None

    @property
    def is_gatekeeper_valid(self) -> bool:
        cache = self._caches.get(self._app_id())
        return cache is not None and cache.is_fresh()

    @property
    def is_loading(self) -> bool:
        cache = self._caches.get(self._app_id())
        return cache is not None and cache.entry.is_fetch_in_flight

    def load_gatekeepers_request(self, app_id: str | None = None) -> GraphRequest:
        # TODO: give this request a 4 second timeout once GraphRequest carries one
        app_id = app_id or self._app_id()
        parameters = {
            "fields": "gatekeepers",
            "format": "json",
            "include_headers": "false",
            "platform": "python",
            "sdk": "python",
            "sdk_version": self._settings.sdk_version,
        }
        return GraphRequest(
            Gatekeepers(app_id),
            parameters,
            flags=SYSTEM_REQUEST_FLAGS,
            settings=self._settings,
            credential_provider=self._credential_provider,
        )

    async def load_gatekeepers(self) -> FetchResult[GatekeeperList]:
        """Load gatekeepers for the configured application id.

        The persisted gatekeepers are always read first, so ``gatekeepers``
        reflects the last stored value even when no fetch happens or the
        fetch fails. A fetch is only issued when the cached flags are stale.
        """
        app_id = self._app_id()
        cache = self._cache_for(app_id)

        persisted = await cache.seed()
        if persisted is not None:
            self._gatekeepers[app_id] = persisted

        return await cache.ensure_fresh()

    def is_enabled(self, name: str, default: bool = False) -> bool:
        """Look up a gatekeeper for the current app by name."""
        for gatekeeper in self._gatekeepers.get(self._app_id(), []):
            if gatekeeper.name == name:
                return gatekeeper.is_enabled
        return default

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _app_id(self) -> str:
        if not self._settings.app_id:
            raise AppIDRequiredError("An app id is required to load gatekeepers")
        return self._settings.app_id

    def _cache_for(self, app_id: str) -> SingleFlightCache[GatekeeperList]:
        cache = self._caches.get(app_id)
        if cache is None:
            cache = SingleFlightCache(
                name=f"gatekeepers:{app_id}",
                window=self._settings.gatekeeper_ttl,
                fetch=partial(self._fetch, app_id),
                store=GatekeeperStore(self._adapter, app_id),
                extra_condition=lambda _value, _credential: (
                    self.is_requery_finished_for_app_start
                ),
                on_change=partial(self._did_change, app_id),
                on_fetch_finished=self._did_finish_fetch,
                logger=self._logger,
                clock=self._clock,
            )
            self._caches[app_id] = cache
        return cache

    async def _fetch(self, app_id: str, _credential: Credential | None) -> GatekeeperList:
        return await self._transport.execute(
            self.load_gatekeepers_request(app_id), gatekeepers_from_graph
        )

    def _did_change(
        self, app_id: str, _previous: GatekeeperList | None, current: GatekeeperList
    ) -> None:
        self._gatekeepers[app_id] = current

    def _did_finish_fetch(self, _result: FetchResult[GatekeeperList]) -> None:
        self.is_requery_finished_for_app_start = True
