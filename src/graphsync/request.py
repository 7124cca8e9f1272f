"""Graph request descriptors.

A ``GraphRequest`` captures the intent of one Graph API call: path,
parameters, HTTP method, credential, API version, and behavior flags. Building
one never touches the network.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, Flag, auto
from types import MappingProxyType
from typing import Any

from graphsync.config import Settings, get_settings
from graphsync.credentials import Credential, CredentialProvider
from graphsync.paths import GraphPath, as_graph_path

_DEFAULT = object()


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    DELETE = "DELETE"


class RequestFlags(Flag):
    """Behavior flags; combine with ``|``."""

    NONE = 0
    # Do not fall back to the client token when the request has no credential
    SKIP_CLIENT_TOKEN = auto()
    # Do not close the session when the response is an oauth error
    DO_NOT_INVALIDATE_TOKEN_ON_ERROR = auto()
    # Do not run error recovery for this request
    DISABLE_ERROR_RECOVERY = auto()


# Refreshes of the gatekeeper and profile caches must never invalidate the
# session or recurse into error recovery.
SYSTEM_REQUEST_FLAGS = (
    RequestFlags.DO_NOT_INVALIDATE_TOKEN_ON_ERROR
    | RequestFlags.DISABLE_ERROR_RECOVERY
)


@dataclass(frozen=True, slots=True)
class GraphRequestAttachment:
    """Binary parameter sent as a multipart part."""

    data: bytes
    filename: str | None = None
    content_type: str = "application/octet-stream"


def is_attachment(value: Any) -> bool:
    return isinstance(value, (bytes, bytearray, memoryview, GraphRequestAttachment))


class GraphRequest:
    """Description of a single Graph API call."""

    __slots__ = (
        "_graph_path",
        "_parameters",
        "_http_method",
        "_credential",
        "_version",
        "_flags",
    )

    def __init__(
        self,
        graph_path: GraphPath | str,
        parameters: Mapping[str, Any] | None = None,
        *,
        credential: Credential | None | object = _DEFAULT,
        version: str | None = None,
        http_method: HTTPMethod = HTTPMethod.GET,
        flags: RequestFlags = RequestFlags.NONE,
        settings: Settings | None = None,
        credential_provider: CredentialProvider | None = None,
    ) -> None:
        """Create a request.

        Args:
            graph_path: Path to call, e.g. ``Me()`` or ``"me/friends"``
            parameters: Request parameters, kept in the given order
            credential: Credential to send. Omitted means the provider's
                current credential; ``None`` means no credential at all.
            version: API version, defaults to ``settings.graph_api_version``
            http_method: HTTP verb
            flags: Behavior flags
            settings: Configuration, defaults to ``get_settings()``
            credential_provider: Source of the current credential
        """
        settings = settings or get_settings()

        if credential is _DEFAULT:
            credential = (
                credential_provider.current if credential_provider is not None else None
            )

        if not settings.is_graph_error_recovery_enabled:
            flags |= RequestFlags.DISABLE_ERROR_RECOVERY

        self._graph_path = as_graph_path(graph_path)
        self._parameters: Mapping[str, Any] = MappingProxyType(dict(parameters or {}))
        self._http_method = HTTPMethod(http_method)
        self._credential: Credential | None = credential  # type: ignore[assignment]
        self._version = version or settings.graph_api_version
        self._flags = flags

    @property
    def graph_path(self) -> GraphPath:
        return self._graph_path

    @property
    def path(self) -> str:
        return str(self._graph_path)

    @property
    def parameters(self) -> Mapping[str, Any]:
        return self._parameters

    @property
    def http_method(self) -> HTTPMethod:
        return self._http_method

    @property
    def credential(self) -> Credential | None:
        return self._credential

    @property
    def version(self) -> str:
        return self._version

    @property
    def flags(self) -> RequestFlags:
        return self._flags

    @property
    def is_graph_recovery_disabled(self) -> bool:
        return RequestFlags.DISABLE_ERROR_RECOVERY in self._flags

    @property
    def has_attachments(self) -> bool:
        """True if any parameter is a binary payload."""
        return any(is_attachment(value) for value in self._parameters.values())

    def set_graph_error_recoverability(self, enabled: bool) -> None:
        """Enable or disable error recovery for this request only.

        Only ``DISABLE_ERROR_RECOVERY`` changes; every other flag is kept.
        """
        if enabled:
            self._flags &= ~RequestFlags.DISABLE_ERROR_RECOVERY
        else:
            self._flags |= RequestFlags.DISABLE_ERROR_RECOVERY

    def __repr__(self) -> str:
        return (
            f"GraphRequest({self.path!r}, method={self._http_method.value}, "
            f"version={self._version!r}, flags={self._flags!r})"
        )
