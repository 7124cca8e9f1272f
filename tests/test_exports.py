"""Tests for package exports."""

import graphsync


def test_public_api_is_importable() -> None:
    """Test that the services and their collaborators are exported."""
    from graphsync import (
        GatekeeperService,
        HttpxGraphTransport,
        NotificationCenter,
        SingleFlightCache,
        UserProfileService,
        build_bridge_request_url,
    )

    assert GatekeeperService is not None
    assert UserProfileService is not None
    assert SingleFlightCache is not None
    assert HttpxGraphTransport is not None
    assert NotificationCenter is not None
    assert build_bridge_request_url is not None


def test_all_names_resolve() -> None:
    """Test that every name in __all__ is present (redis extra installed)."""
    missing = [name for name in graphsync.__all__ if not hasattr(graphsync, name)]
    assert missing in ([], ["AsyncRedisAdapter"])


def test_version() -> None:
    assert graphsync.__version__ == "0.1.0"
