"""Change notifications.

``NotificationCenter`` is an explicit, injectable pub/sub channel. Handlers
receive the notification name and its ``user_info`` mapping. Bound methods are
held weakly so that observing does not keep the observer alive.
"""

from __future__ import annotations

import weakref
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from graphsync.types import UserInfo

Handler = Callable[[str, UserInfo], Any]

PROFILE_DID_CHANGE = "graphsync.profile_did_change"
CREDENTIAL_DID_CHANGE = "graphsync.credential_did_change"

# user_info keys; the *_OLD_KEY entries are absent when there was no old value
PROFILE_CHANGE_NEW_KEY = "profile_new"
PROFILE_CHANGE_OLD_KEY = "profile_old"
CREDENTIAL_CHANGE_NEW_KEY = "credential_new"
CREDENTIAL_CHANGE_OLD_KEY = "credential_old"


@runtime_checkable
class NotificationChannel(Protocol):
    """Posting and observing interface consumed by the services."""

    def post(self, name: str, user_info: UserInfo) -> None:
        """Deliver ``user_info`` to every handler observing ``name``."""
        ...

    def observe(self, name: str, handler: Handler) -> None:
        """Register ``handler`` for ``name``; registering twice is a no-op."""
        ...

    def unobserve(self, handler: Handler, name: str | None = None) -> None:
        """Remove ``handler`` from ``name`` (or from every name)."""
        ...


class _HandlerRef:
    """Strong or weak reference to a handler, compared by the handler itself."""

    __slots__ = ("_ref", "_strong")

    def __init__(self, handler: Handler) -> None:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            self._ref: Callable[[], Handler | None] | None = weakref.WeakMethod(
                handler  # type: ignore[arg-type]
            )
            self._strong: Handler | None = None
        else:
            self._ref = None
            self._strong = handler

    def resolve(self) -> Handler | None:
        if self._ref is not None:
            return self._ref()
        return self._strong

    def matches(self, handler: Handler) -> bool:
        return self.resolve() == handler


class NotificationCenter:
    """In-process notification channel."""

    def __init__(self) -> None:
        self._observers: dict[str, list[_HandlerRef]] = {}

    def post(self, name: str, user_info: UserInfo) -> None:
        refs = self._observers.get(name, [])
        alive = [ref for ref in refs if ref.resolve() is not None]
        if len(alive) != len(refs):
            self._observers[name] = alive
        for ref in list(alive):
            handler = ref.resolve()
            if handler is not None:
                handler(name, user_info)

    def observe(self, name: str, handler: Handler) -> None:
        refs = self._observers.setdefault(name, [])
        if any(ref.matches(handler) for ref in refs):
            return
        refs.append(_HandlerRef(handler))

    def unobserve(self, handler: Handler, name: str | None = None) -> None:
        names = [name] if name is not None else list(self._observers)
        for key in names:
            refs = self._observers.get(key)
            if not refs:
                continue
            self._observers[key] = [ref for ref in refs if not ref.matches(handler)]

    def observer_count(self, name: str) -> int:
        """Number of live handlers registered for ``name``."""
        return sum(
            1 for ref in self._observers.get(name, []) if ref.resolve() is not None
        )
