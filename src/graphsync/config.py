"""Configuration for graphsync.

Settings are read from ``GRAPHSYNC_*`` environment variables (or a ``.env``
file) and passed explicitly to services and requests. ``get_settings()`` is the
default provider used when a caller does not hand in its own instance.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from graphsync.duration import parse_duration
from graphsync.types import Duration


class LoggingBehavior(str, Enum):
    """Categories a log line can belong to."""

    NETWORK_REQUESTS = "network_requests"
    DEVELOPER_ERRORS = "developer_errors"
    CACHE = "cache"
    INFORMATIONAL = "informational"


class Settings(BaseSettings):
    """Process-wide graphsync configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GRAPHSYNC_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    app_id: str | None = None
    client_token: str | None = None
    graph_api_version: str = "v5.0"
    graph_domain: str = "facebook.com"
    is_graph_error_recovery_enabled: bool = True
    url_scheme_suffix: str | None = None
    # Shared secret the receiving application uses to encrypt its response
    bridge_cipher_key: str = ""
    sdk_version: str = "0.1.0"

    gatekeeper_ttl: Duration = "1h"
    profile_ttl: Duration = "1d"

    logging_behaviors: set[LoggingBehavior] = Field(
        default_factory=lambda: {
            LoggingBehavior.DEVELOPER_ERRORS,
            LoggingBehavior.NETWORK_REQUESTS,
        }
    )

    @field_validator("gatekeeper_ttl", "profile_ttl")
    @classmethod
    def _validate_ttl(cls, value: Duration) -> Duration:
        parse_duration(value)
        return value

    @property
    def gatekeeper_ttl_ms(self) -> int:
        return parse_duration(self.gatekeeper_ttl)

    @property
    def profile_ttl_ms(self) -> int:
        return parse_duration(self.profile_ttl)

    @property
    def graph_base_url(self) -> str:
        return f"https://graph.{self.graph_domain}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the default settings instance, built once from the environment."""
    return Settings()
