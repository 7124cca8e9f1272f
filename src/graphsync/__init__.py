"""graphsync - staleness-gated synchronization of Graph API state."""

from contextlib import suppress

# Adapters (async only)
from graphsync.adapters import (
    AsyncMemoryAdapter,
    AsyncStorageAdapter,
)

# Bridge requests
from graphsync.bridge import (
    BridgeRequest,
    BridgeURLProvider,
    NativeBridgeURLProvider,
    SchemeChecker,
    URLCategory,
    build_bridge_request_url,
)

# Configuration and logging
from graphsync.config import LoggingBehavior, Settings, get_settings
from graphsync.credentials import Credential, CredentialProvider, CredentialWallet
from graphsync.duration import parse_duration

# Errors
from graphsync.errors import (
    AppIDRequiredError,
    BridgeError,
    CredentialRequiredError,
    FetchFailedError,
    GraphAPIError,
    GraphSyncError,
    InvalidAppIDError,
    InvalidURLSchemeError,
    SchemeUnavailableError,
    URLBuildFailedError,
)

# Services
from graphsync.gatekeepers import GatekeeperService
from graphsync.logger import Logger, StructlogLogger, configure_logging
from graphsync.models import Gatekeeper, Profile
from graphsync.notifications import (
    CREDENTIAL_DID_CHANGE,
    PROFILE_CHANGE_NEW_KEY,
    PROFILE_CHANGE_OLD_KEY,
    PROFILE_DID_CHANGE,
    NotificationCenter,
    NotificationChannel,
)
from graphsync.paths import Gatekeepers, GraphPath, Me, Other, Picture
from graphsync.profiles import NormalImage, SquareImage, UserProfileService

# Requests
from graphsync.request import (
    GraphRequest,
    GraphRequestAttachment,
    HTTPMethod,
    RequestFlags,
)
from graphsync.single_flight import SingleFlightCache
from graphsync.staleness import is_fresh
from graphsync.transport import GraphTransport, HttpxGraphTransport

# Core types
from graphsync.types import CacheEntry, Duration, FetchResult

# Optional adapter imports - only available when dependencies are installed
with suppress(ImportError):
    from graphsync.adapters import AsyncRedisAdapter

__version__ = "0.1.0"

__all__ = [
    "CREDENTIAL_DID_CHANGE",
    "PROFILE_CHANGE_NEW_KEY",
    "PROFILE_CHANGE_OLD_KEY",
    "PROFILE_DID_CHANGE",
    "AppIDRequiredError",
    "AsyncMemoryAdapter",
    "AsyncRedisAdapter",
    "AsyncStorageAdapter",
    "BridgeError",
    "BridgeRequest",
    "BridgeURLProvider",
    "CacheEntry",
    "Credential",
    "CredentialProvider",
    "CredentialRequiredError",
    "CredentialWallet",
    "Duration",
    "FetchFailedError",
    "FetchResult",
    "Gatekeeper",
    "GatekeeperService",
    "Gatekeepers",
    "GraphAPIError",
    "GraphPath",
    "GraphRequest",
    "GraphRequestAttachment",
    "GraphSyncError",
    "GraphTransport",
    "HTTPMethod",
    "HttpxGraphTransport",
    "InvalidAppIDError",
    "InvalidURLSchemeError",
    "Logger",
    "LoggingBehavior",
    "Me",
    "NativeBridgeURLProvider",
    "NormalImage",
    "NotificationCenter",
    "NotificationChannel",
    "Other",
    "Picture",
    "Profile",
    "RequestFlags",
    "SchemeChecker",
    "SchemeUnavailableError",
    "Settings",
    "SingleFlightCache",
    "SquareImage",
    "StructlogLogger",
    "URLBuildFailedError",
    "URLCategory",
    "UserProfileService",
    "build_bridge_request_url",
    "configure_logging",
    "get_settings",
    "is_fresh",
    "parse_duration",
]
