"""Graph API paths.

A path can be one of the known shapes or any literal string::

    str(Picture("user123"))         # "user123/picture"
    str(as_graph_path("user123/picture"))  # "user123/picture"
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Me:
    def __str__(self) -> str:
        return "me"


@dataclass(frozen=True, slots=True)
class Picture:
    identifier: str

    def __str__(self) -> str:
        return f"{self.identifier}/picture"


@dataclass(frozen=True, slots=True)
class Other:
    path: str

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True, slots=True)
class Gatekeepers:
    app_id: str

    def __str__(self) -> str:
        return f"{self.app_id}/mobile_sdk_gk"


GraphPath = Me | Picture | Other | Gatekeepers


def as_graph_path(value: GraphPath | str) -> GraphPath:
    """Coerce a literal string into ``Other``; pass known paths through."""
    if isinstance(value, str):
        return Other(value)
    if not isinstance(value, (Me, Picture, Other, Gatekeepers)):
        raise TypeError(f"Expected a graph path or str, got {type(value)}")
    return value
