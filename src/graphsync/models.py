"""Domain values synchronized from the Graph API."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from graphsync.duration import now_ms


@dataclass(frozen=True, slots=True)
class Gatekeeper:
    """A named server-side feature flag."""

    name: str
    is_enabled: bool

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "is_enabled": self.is_enabled}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Gatekeeper:
        return cls(name=data["name"], is_enabled=bool(data["is_enabled"]))


# Ordered flags for one application identifier
GatekeeperList = list[Gatekeeper]


def gatekeepers_from_graph(payload: Mapping[str, Any]) -> GatekeeperList:
    """Decode a ``<app_id>/mobile_sdk_gk`` response.

    The payload looks like
    ``{"data": [{"gatekeepers": [{"key": "foo", "value": true}]}]}``.
    Entries without a key are skipped; a missing value reads as disabled.
    """
    gatekeepers: GatekeeperList = []
    for item in payload.get("data") or []:
        for remote in item.get("gatekeepers") or []:
            key = remote.get("key")
            if not key:
                continue
            gatekeepers.append(Gatekeeper(name=key, is_enabled=bool(remote.get("value"))))
    return gatekeepers


@dataclass(frozen=True, slots=True)
class Profile:
    """An immutable user profile.

    A new profile always replaces the cached one; it is never mutated.
    """

    identifier: str
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    name: str | None = None
    fetched_at: int = 0  # Unix timestamp ms
    link: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "first_name": self.first_name,
            "middle_name": self.middle_name,
            "last_name": self.last_name,
            "name": self.name,
            "fetched_at": self.fetched_at,
            "link": self.link,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Profile:
        return cls(
            identifier=data["identifier"],
            first_name=data.get("first_name"),
            middle_name=data.get("middle_name"),
            last_name=data.get("last_name"),
            name=data.get("name"),
            fetched_at=int(data.get("fetched_at", 0)),
            link=data.get("link"),
        )

    @classmethod
    def from_graph(cls, payload: Mapping[str, Any], *, fetched_at: int | None = None) -> Profile:
        """Decode a ``me`` response, stamping it with the fetch time."""
        identifier = payload.get("id")
        if not identifier:
            raise ValueError("Profile response is missing 'id'")
        return cls(
            identifier=str(identifier),
            first_name=payload.get("first_name"),
            middle_name=payload.get("middle_name"),
            last_name=payload.get("last_name"),
            name=payload.get("name"),
            fetched_at=fetched_at if fetched_at is not None else now_ms(),
            link=payload.get("link"),
        )
