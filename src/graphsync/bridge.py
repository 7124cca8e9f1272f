"""Bridge requests: URLs that hand a call over to another application.

``build_bridge_request_url()`` turns a ``BridgeRequest`` into the URL opened
on the receiving side. It fails closed: every check runs before the URL is
returned, and the scheme-openability check runs before anything is built.
"""

from __future__ import annotations

import json
import re
import uuid
from collections.abc import Hashable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from graphsync.config import Settings, get_settings
from graphsync.errors import (
    InvalidAppIDError,
    InvalidURLSchemeError,
    SchemeUnavailableError,
    URLBuildFailedError,
)

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


class URLCategory(str, Enum):
    """How a bridge request reaches the receiving application."""

    NATIVE = "native"
    WEB = "web"


@runtime_checkable
class SchemeChecker(Protocol):
    """Answers questions about URL schemes on the host platform."""

    def can_open(self, url: str) -> bool:
        """Whether some installed application handles ``url``."""
        ...

    def application_query_scheme(self) -> str:
        """Scheme of the application that receives bridge calls."""
        ...

    def required_schemes_declared(self) -> bool:
        """Whether the host application declares the URL schemes it needs."""
        ...


@runtime_checkable
class BridgeURLProvider(Protocol):
    """Encodes a bridge call into its base URL."""

    def request_url(
        self,
        *,
        action_id: str,
        method_name: str,
        method_version: str,
        parameters: Mapping[str, Hashable],
    ) -> str:
        ...


def _new_action_id() -> str:
    return str(uuid.uuid4()).upper()


@dataclass(frozen=True, slots=True)
class BridgeRequest:
    """One bridge call. ``action_id`` identifies it on the receiving side.

    ``parameters`` and ``user_info`` are copied into read-only mappings.
    """

    method_name: str
    method_version: str
    parameters: Mapping[str, Hashable] = field(default_factory=dict)
    scheme: str = ""
    user_info: Mapping[str, Hashable] = field(default_factory=dict)
    action_id: str = field(default_factory=_new_action_id)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))
        object.__setattr__(self, "user_info", MappingProxyType(dict(self.user_info)))

    @classmethod
    def create(
        cls,
        method_name: str,
        method_version: str,
        parameters: Mapping[str, Hashable] | None = None,
        *,
        scheme_checker: SchemeChecker,
        url_category: URLCategory = URLCategory.NATIVE,
        user_info: Mapping[str, Hashable] | None = None,
        action_id: str | None = None,
    ) -> BridgeRequest:
        """Create a request addressed to the application query scheme.

        Raises:
            SchemeUnavailableError: native call and the receiving
                application cannot be opened
        """
        ensure_scheme_openable(scheme_checker, url_category)
        return cls(
            method_name=method_name,
            method_version=method_version,
            parameters=dict(parameters or {}),
            scheme=scheme_checker.application_query_scheme(),
            user_info=dict(user_info or {}),
            action_id=action_id or _new_action_id(),
        )


def ensure_scheme_openable(checker: SchemeChecker, category: URLCategory) -> None:
    """Fail fast when a native call's receiver cannot be opened."""
    if category is not URLCategory.NATIVE:
        return
    scheme = checker.application_query_scheme()
    if not scheme or not _SCHEME_PATTERN.match(scheme):
        raise SchemeUnavailableError(f"Invalid application query scheme: {scheme!r}")
    open_url = f"{scheme}:/"
    if not checker.can_open(open_url):
        raise SchemeUnavailableError(
            f"Cannot open {open_url}", {"scheme": scheme}
        )


def _encode_query(items: list[tuple[str, str]]) -> str:
    return urlencode(items, quote_via=quote)


def _json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


class NativeBridgeURLProvider:
    """Encodes calls as ``<scheme>://dialog/<method>?bridge_args=..``."""

    def __init__(self, scheme: str = "fbapi20130214", host: str = "dialog") -> None:
        self._scheme = scheme
        self._host = host

    def request_url(
        self,
        *,
        action_id: str,
        method_name: str,
        method_version: str,
        parameters: Mapping[str, Hashable],
    ) -> str:
        query = [
            ("bridge_args", _json({"action_id": action_id})),
            ("method_args", _json(dict(parameters))),
            ("version", method_version),
        ]
        return urlunsplit(
            (self._scheme, self._host, f"/{method_name}", _encode_query(query), "")
        )


def build_bridge_request_url(
    request: BridgeRequest,
    *,
    url_provider: BridgeURLProvider,
    scheme_checker: SchemeChecker,
    url_category: URLCategory = URLCategory.NATIVE,
    settings: Settings | None = None,
) -> str:
    """Build the security-augmented URL for ``request``.

    The base URL from ``url_provider`` keeps its query items; ``cipher_key``
    and ``app_id`` are appended, plus ``scheme_suffix`` when one is
    configured. The result uses the request's scheme with the base URL's host
    and path.

    Raises:
        SchemeUnavailableError: native call whose receiver cannot be opened
        InvalidURLSchemeError: the host application lacks its URL schemes
        InvalidAppIDError: no app id is configured
        URLBuildFailedError: the URL cannot be parsed or rebuilt
    """
    settings = settings or get_settings()

    ensure_scheme_openable(scheme_checker, url_category)

    base_url = url_provider.request_url(
        action_id=request.action_id,
        method_name=request.method_name,
        method_version=request.method_version,
        parameters=request.parameters,
    )

    if not scheme_checker.required_schemes_declared():
        raise InvalidURLSchemeError("Required URL schemes are not declared")

    app_id = settings.app_id
    if not app_id:
        raise InvalidAppIDError("An app id is required to build bridge requests")

    try:
        parts = urlsplit(base_url)
    except ValueError as exc:
        raise URLBuildFailedError(f"Invalid source URL: {base_url!r}") from exc

    query_items = parse_qsl(parts.query, keep_blank_values=True)
    query_items.append(("cipher_key", settings.bridge_cipher_key))
    query_items.append(("app_id", app_id))
    if settings.url_scheme_suffix:
        query_items.append(("scheme_suffix", settings.url_scheme_suffix))

    return _build_url(request.scheme, parts.netloc, parts.path, query_items)


def _build_url(
    scheme: str, host: str, path: str, query_items: list[tuple[str, str]]
) -> str:
    if not _SCHEME_PATTERN.match(scheme):
        raise URLBuildFailedError(f"Invalid scheme: {scheme!r}")
    if host and path and not path.startswith("/"):
        raise URLBuildFailedError(f"Path {path!r} must be absolute when a host is set")
    if not host and path.startswith("//"):
        raise URLBuildFailedError(f"Path {path!r} cannot start with '//' without a host")
    return urlunsplit((scheme, host, path, _encode_query(query_items), ""))
