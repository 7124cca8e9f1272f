"""Error types raised and reported by graphsync."""

from __future__ import annotations

from typing import Any


class GraphSyncError(Exception):
    """Base exception for graphsync."""

    code = "graphsync_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Structured form used when logging."""
        return {"code": self.code, "message": self.message, "details": self.details}


class CredentialRequiredError(GraphSyncError):
    """A profile load was attempted without any credential available."""

    code = "credential_required"

    def __init__(self, message: str = "An access token is required") -> None:
        super().__init__(message)


class BridgeError(GraphSyncError):
    """Bridge request URL could not be built.

    These reflect static host configuration, so callers should not retry.
    """

    code = "bridge_error"


class SchemeUnavailableError(BridgeError):
    code = "scheme_unavailable"


class InvalidURLSchemeError(BridgeError):
    code = "invalid_url_scheme"


class InvalidAppIDError(BridgeError):
    code = "invalid_app_id"


class URLBuildFailedError(BridgeError):
    code = "url_build_failed"


class GraphAPIError(GraphSyncError):
    """The Graph API answered with a non-success status."""

    code = "graph_api_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        error_type: str | None = None,
        error_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            {"status_code": status_code, "type": error_type, "error_code": error_code},
        )
        self.status_code = status_code
        self.error_type = error_type
        self.error_code = error_code


class FetchFailedError(GraphSyncError):
    """A cache refresh failed; wraps whatever the transport raised."""

    code = "fetch_failed"

    def __init__(self, underlying: BaseException) -> None:
        super().__init__(str(underlying) or type(underlying).__name__)
        self.underlying = underlying
        self.__cause__ = underlying


class AppIDRequiredError(GraphSyncError):
    """An operation needs ``Settings.app_id`` but none is configured."""

    code = "app_id_required"

    def __init__(self, message: str = "An app id is required") -> None:
        super().__init__(message)
