"""Tests for duration parsing."""

from datetime import timedelta

import pytest

from graphsync import parse_duration
from graphsync.duration import now_ms


class TestParseDuration:
    """Tests for parse_duration function."""

    def test_units(self) -> None:
        assert parse_duration("100ms") == 100
        assert parse_duration("30s") == 30_000
        assert parse_duration("5m") == 300_000
        assert parse_duration("1h") == 3_600_000
        assert parse_duration("1d") == 86_400_000

    def test_integer_passthrough(self) -> None:
        """Integers are already milliseconds."""
        assert parse_duration(1000) == 1000
        assert parse_duration(0) == 0

    def test_timedelta(self) -> None:
        assert parse_duration(timedelta(hours=1)) == 3_600_000
        assert parse_duration(timedelta(milliseconds=250)) == 250

    @pytest.mark.parametrize("value", ["invalid", "10x", "s10", "", "10", -5])
    def test_invalid(self, value: str | int) -> None:
        with pytest.raises(ValueError, match="Invalid duration"):
            parse_duration(value)


def test_now_ms_is_milliseconds() -> None:
    # Anything after 2020 in ms has 13 digits
    assert len(str(now_ms())) == 13
