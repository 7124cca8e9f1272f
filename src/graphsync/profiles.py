"""User profile synchronization.

``UserProfileService`` keeps an up-to-date ``Profile`` for the user who owns
the current credential. Every change is persisted and announced with a
``PROFILE_DID_CHANGE`` notification so observers can refresh whatever depends
on the profile.

Set ``should_update_on_credential_change`` to reload the profile automatically
whenever the credential wallet switches to a new credential. If the credential
is cleared the current profile stays in place.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from graphsync.adapters.base import AsyncStorageAdapter
from graphsync.adapters.memory import AsyncMemoryAdapter
from graphsync.config import LoggingBehavior, Settings, get_settings
from graphsync.credentials import Credential, CredentialProvider
from graphsync.duration import now_ms
from graphsync.errors import CredentialRequiredError
from graphsync.logger import Logger, StructlogLogger
from graphsync.models import Profile
from graphsync.notifications import (
    CREDENTIAL_CHANGE_NEW_KEY,
    CREDENTIAL_DID_CHANGE,
    PROFILE_CHANGE_NEW_KEY,
    PROFILE_CHANGE_OLD_KEY,
    PROFILE_DID_CHANGE,
    NotificationCenter,
    NotificationChannel,
)
from graphsync.paths import Me, Picture
from graphsync.request import SYSTEM_REQUEST_FLAGS, GraphRequest
from graphsync.single_flight import CompletionHandler, SingleFlightCache
from graphsync.stores import UserProfileStore
from graphsync.transport import GraphTransport
from graphsync.types import Clock, FetchResult, UserInfo

PROFILE_FIELDS = "id,first_name,middle_name,last_name,name,link"


@dataclass(frozen=True, slots=True)
class NormalImage:
    height: int
    width: int

    mode = "normal"


@dataclass(frozen=True, slots=True)
class SquareImage:
    size: int

    mode = "square"


ImageSizing = NormalImage | SquareImage


class UserProfileService:
    """Loads, stores, and announces the current user's profile."""

    def __init__(
        self,
        transport: GraphTransport,
        *,
        adapter: AsyncStorageAdapter | None = None,
        notifications: NotificationChannel | None = None,
        credential_provider: CredentialProvider | None = None,
        settings: Settings | None = None,
        logger: Logger | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self._transport = transport
        self._settings = settings or get_settings()
        self._notifications: NotificationChannel = notifications or NotificationCenter()
        self._credential_provider = credential_provider
        self._logger = logger or StructlogLogger(self._settings)
        self._clock = clock
        self._store = UserProfileStore(adapter or AsyncMemoryAdapter())
        self._should_update_on_credential_change = False
        self._background_tasks: set[asyncio.Task[FetchResult[Profile]]] = set()

        self._cache: SingleFlightCache[Profile] = SingleFlightCache(
            name="user_profile",
            window=self._settings.profile_ttl,
            fetch=self._fetch,
            store=self._store,
            extra_condition=_profile_matches,
            timestamp_of=lambda profile: profile.fetched_at,
            on_change=self._did_change,
            logger=self._logger,
            clock=self._clock,
        )

    @property
    def user_profile(self) -> Profile | None:
        return self._cache.value

    @property
    def notifications(self) -> NotificationChannel:
        return self._notifications

    @property
    def is_current_profile_outdated(self) -> bool:
        profile = self._cache.value
        if profile is None:
            return True
        return self._clock() - profile.fetched_at >= self._cache_window_ms

    @property
    def should_update_on_credential_change(self) -> bool:
        return self._should_update_on_credential_change

    @should_update_on_credential_change.setter
    def should_update_on_credential_change(self, enabled: bool) -> None:
        # observe/unobserve are idempotent, so toggling never stacks handlers
        if enabled:
            self._notifications.observe(CREDENTIAL_DID_CHANGE, self._credential_did_change)
        else:
            self._notifications.unobserve(self._credential_did_change)
        self._should_update_on_credential_change = enabled

    async def restore(self) -> Profile | None:
        """Seed the in-memory profile from the persistent store."""
        return await self._cache.seed()

    async def set_current(self, profile: Profile) -> None:
        """Replace the current profile, persist it, and post a change."""
        await self._cache.update(profile)

    def load_profile_request(self, credential: Credential) -> GraphRequest:
        return GraphRequest(
            Me(),
            {"fields": PROFILE_FIELDS},
            credential=credential,
            flags=SYSTEM_REQUEST_FLAGS,
            settings=self._settings,
        )

    async def load_profile(
        self,
        credential: Credential | None = None,
        on_complete: CompletionHandler[Profile] | None = None,
    ) -> FetchResult[Profile]:
        """Load the profile for ``credential`` (default: the current one).

        If the cached profile is recent and belongs to the credential's user,
        it is returned without a request. Otherwise the profile is fetched;
        a failed fetch is logged and reported in the result, and the cached
        profile is kept.

        Raises:
            CredentialRequiredError: no credential was given and none is
                current. Nothing is fetched in that case.
        """
        if credential is None and self._credential_provider is not None:
            credential = self._credential_provider.current
        if credential is None:
            raise CredentialRequiredError()

        return await self._cache.ensure_fresh(credential, on_complete)

    def image_url(self, sizing: ImageSizing, identifier: str | None = None) -> str:
        """Build the Graph URL of a profile picture.

        Uses the current profile's identifier unless one is given, falling
        back to ``me``.
        """
        if identifier is None:
            profile = self._cache.value
            identifier = profile.identifier if profile is not None else "me"

        if isinstance(sizing, SquareImage):
            height = width = sizing.size
        else:
            height, width = sizing.height, sizing.width

        url = httpx.URL(
            f"{self._settings.graph_base_url}/{self._settings.graph_api_version}/"
            f"{Picture(identifier)}",
            params={"type": sizing.mode, "height": str(height), "width": str(width)},
        )
        return str(url)

    def close(self) -> None:
        """Stop observing credential changes and detach the cache."""
        self.should_update_on_credential_change = False
        self._cache.close()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    @property
    def _cache_window_ms(self) -> int:
        return self._settings.profile_ttl_ms

    async def _fetch(self, credential: Credential | None) -> Profile:
        if credential is None:
            raise CredentialRequiredError()
        return await self._transport.execute(
            self.load_profile_request(credential),
            lambda payload: Profile.from_graph(payload, fetched_at=self._clock()),
        )

    def _did_change(self, previous: Profile | None, current: Profile) -> None:
        user_info: UserInfo = {PROFILE_CHANGE_NEW_KEY: current}
        if previous is not None:
            user_info[PROFILE_CHANGE_OLD_KEY] = previous
        self._notifications.post(PROFILE_DID_CHANGE, user_info)

    def _credential_did_change(self, _name: str, user_info: UserInfo) -> None:
        credential = user_info.get(CREDENTIAL_CHANGE_NEW_KEY)
        if not isinstance(credential, Credential):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.log(
                LoggingBehavior.DEVELOPER_ERRORS,
                "Credential changed outside an event loop; profile not reloaded",
            )
            return
        task = loop.create_task(self.load_profile(credential))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)


def _profile_matches(profile: Profile | None, credential: Credential | None) -> bool:
    """A cached profile only counts when it belongs to the credential's user."""
    return (
        profile is not None
        and credential is not None
        and profile.identifier == credential.user_id
    )
