"""Access credentials and the provider that tracks the current one."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from graphsync.notifications import (
    CREDENTIAL_CHANGE_NEW_KEY,
    CREDENTIAL_CHANGE_OLD_KEY,
    CREDENTIAL_DID_CHANGE,
    NotificationChannel,
)
from graphsync.types import UserInfo


@dataclass(frozen=True, slots=True)
class Credential:
    """An access token and the identity that owns it."""

    token_string: str = field(repr=False)
    app_id: str
    user_id: str


@runtime_checkable
class CredentialProvider(Protocol):
    """Source of the process-wide current credential."""

    @property
    def current(self) -> Credential | None:
        """The credential in use, if any."""
        ...


class CredentialWallet:
    """Holds the current credential and announces changes to it."""

    def __init__(
        self,
        notifications: NotificationChannel | None = None,
        current: Credential | None = None,
    ) -> None:
        self._notifications = notifications
        self._current = current

    @property
    def current(self) -> Credential | None:
        return self._current

    def set_current(self, credential: Credential | None) -> None:
        """Replace the current credential, posting a change when it differs."""
        previous = self._current
        self._current = credential
        if previous == credential or self._notifications is None:
            return

        user_info: UserInfo = {}
        if credential is not None:
            user_info[CREDENTIAL_CHANGE_NEW_KEY] = credential
        if previous is not None:
            user_info[CREDENTIAL_CHANGE_OLD_KEY] = previous
        self._notifications.post(CREDENTIAL_DID_CHANGE, user_info)
