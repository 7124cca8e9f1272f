"""Shared pytest fixtures and fakes."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest

from graphsync import (
    AsyncMemoryAdapter,
    Credential,
    CredentialWallet,
    GraphRequest,
    LoggingBehavior,
    NotificationCenter,
    Settings,
)

NOW = 1_700_000_000_000
ONE_HOUR = 3_600_000
ONE_DAY = 86_400_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeLogger:
    """Captures log calls instead of emitting them."""

    def __init__(self) -> None:
        self.captured: list[tuple[LoggingBehavior, str]] = []

    def log(self, behavior: LoggingBehavior, message: str) -> None:
        self.captured.append((behavior, message))

    @property
    def captured_messages(self) -> list[str]:
        return [message for _, message in self.captured]

    def messages_for(self, behavior: LoggingBehavior) -> list[str]:
        return [message for logged, message in self.captured if logged is behavior]


class FakeTransport:
    """Graph transport returning a stubbed payload or raising a stubbed error.

    Set ``gate`` to hold every request open until the event is set.
    """

    def __init__(self, payload: Mapping[str, Any] | None = None) -> None:
        self.payload: Mapping[str, Any] | None = payload
        self.error: Exception | None = None
        self.requests: list[GraphRequest] = []
        self.gate: asyncio.Event | None = None

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def stub_success(self, payload: Mapping[str, Any]) -> None:
        self.payload = payload
        self.error = None

    def stub_failure(self, error: Exception) -> None:
        self.payload = None
        self.error = error

    async def execute(self, request: GraphRequest, decode: Any) -> Any:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return decode(self.payload or {})


class RecordingObserver:
    """Notification handler that records what it receives."""

    def __init__(self) -> None:
        self.received: list[tuple[str, dict[str, Any]]] = []
        self.event = asyncio.Event()

    def __call__(self, name: str, user_info: dict[str, Any]) -> None:
        self.received.append((name, user_info))
        self.event.set()

    @property
    def last(self) -> dict[str, Any] | None:
        return self.received[-1][1] if self.received else None


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment."""
    return Settings(
        app_id="123",
        client_token="client-token",
        graph_api_version="v5.0",
        url_scheme_suffix=None,
        bridge_cipher_key="secret",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def logger() -> FakeLogger:
    return FakeLogger()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def async_adapter() -> AsyncMemoryAdapter:
    """Create a fresh AsyncMemoryAdapter for each test."""
    return AsyncMemoryAdapter()


@pytest.fixture
def notifications() -> NotificationCenter:
    return NotificationCenter()


@pytest.fixture
def wallet(notifications: NotificationCenter) -> CredentialWallet:
    return CredentialWallet(notifications)


@pytest.fixture
def credential() -> Credential:
    return Credential(token_string="token-abc", app_id="123", user_id="abc")
