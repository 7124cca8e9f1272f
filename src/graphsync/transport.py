"""Transport that executes graph requests over HTTP."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, TypeVar, cast, runtime_checkable

import httpx

from graphsync.config import Settings, get_settings
from graphsync.errors import GraphAPIError
from graphsync.request import (
    GraphRequest,
    GraphRequestAttachment,
    HTTPMethod,
    RequestFlags,
    is_attachment,
)

T = TypeVar("T")

Decoder = Callable[[Mapping[str, Any]], T]


@runtime_checkable
class GraphTransport(Protocol):
    """Executes a request and decodes the JSON body with ``decode``.

    Implementations raise on failure; callers decide how errors surface.
    """

    async def execute(self, request: GraphRequest, decode: Decoder[T]) -> T:
        ...


def _encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class HttpxGraphTransport:
    """``GraphTransport`` backed by ``httpx.AsyncClient``."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(
            base_url=self._settings.graph_base_url,
            timeout=timeout,
        )

    def _access_token(self, request: GraphRequest) -> str | None:
        if request.credential is not None:
            return request.credential.token_string
        if RequestFlags.SKIP_CLIENT_TOKEN in request.flags:
            return None
        if self._settings.app_id and self._settings.client_token:
            return f"{self._settings.app_id}|{self._settings.client_token}"
        return None

    def build_url(self, request: GraphRequest) -> str:
        return f"/{request.version}/{request.path}"

    def _build_params(self, request: GraphRequest) -> dict[str, str]:
        params = {
            key: _encode_value(value)
            for key, value in request.parameters.items()
            if not is_attachment(value)
        }
        token = self._access_token(request)
        if token is not None:
            params["access_token"] = token
        return params

    def _build_files(self, request: GraphRequest) -> dict[str, Any]:
        files: dict[str, Any] = {}
        for key, value in request.parameters.items():
            if isinstance(value, GraphRequestAttachment):
                files[key] = (value.filename or key, value.data, value.content_type)
            elif is_attachment(value):
                files[key] = (key, bytes(value), "application/octet-stream")
        return files

    async def _send(self, request: GraphRequest) -> httpx.Response:
        url = self.build_url(request)
        params = self._build_params(request)

        if request.http_method is HTTPMethod.POST:
            if request.has_attachments:
                return await self._client.post(
                    url, data=params, files=self._build_files(request)
                )
            return await self._client.post(url, data=params)
        if request.http_method is HTTPMethod.DELETE:
            return await self._client.delete(url, params=params)
        return await self._client.get(url, params=params)

    async def execute(self, request: GraphRequest, decode: Decoder[T]) -> T:
        response = await self._send(request)
        if not response.is_success:
            raise self._error_from(response)
        return decode(cast(dict[str, Any], response.json()))

    @staticmethod
    def _error_from(response: httpx.Response) -> GraphAPIError:
        try:
            body = response.json()
        except ValueError:
            body = None
        raw = body.get("error") if isinstance(body, dict) else None
        if raw is None:
            error: dict[str, Any] = {}
        elif isinstance(raw, dict):
            error = raw
        else:
            # OAuth endpoints answer with a bare error string
            error = {"message": str(raw)}
        return GraphAPIError(
            error.get("message") or f"HTTP {response.status_code}",
            status_code=response.status_code,
            error_type=error.get("type"),
            error_code=error.get("code"),
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
