"""Tests for dt_utils - pure date/time helpers, no HA fixtures needed."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from freezegun import freeze_time
import pytest

from custom_components.habit_targets.utils.dt_utils import (
    EPOCH,
    as_local,
    as_utc,
    dt_add_months,
    dt_now_utc,
    dt_parse_utc,
    dt_to_epoch_seconds,
    dt_to_iso,
    local_midnight,
    resolve_timezone,
)


class TestResolveTimezone:
    """Test timezone resolution."""

    def test_iana_name(self) -> None:
        """IANA names resolve to ZoneInfo."""
        assert resolve_timezone("America/New_York") == ZoneInfo("America/New_York")

    def test_tzinfo_passthrough(self) -> None:
        """An existing tzinfo is returned unchanged."""
        tz = timezone(timedelta(hours=5))
        assert resolve_timezone(tz) is tz

    @pytest.mark.parametrize("value", ["", "Mars/Olympus_Mons", "not a zone"])
    def test_invalid_raises(self, value: str) -> None:
        """Empty and unknown names raise ValueError."""
        with pytest.raises(ValueError):
            resolve_timezone(value)


class TestConversions:
    """Test UTC/local conversion helpers."""

    def test_naive_treated_as_utc(self) -> None:
        """Naive datetimes are read as UTC."""
        assert as_utc(datetime(2025, 3, 1, 12, 0)) == datetime(
            2025, 3, 1, 12, 0, tzinfo=UTC
        )

    def test_as_local(self) -> None:
        """UTC noon is 13:00 in Berlin during winter."""
        local = as_local(datetime(2025, 1, 15, 12, 0, tzinfo=UTC), ZoneInfo("Europe/Berlin"))
        assert local.hour == 13

    def test_local_midnight_across_dst(self) -> None:
        """Midnight after spring-forward has the summer offset."""
        tz = ZoneInfo("Europe/Berlin")
        before = local_midnight(date(2025, 3, 30), tz)
        after = local_midnight(date(2025, 3, 31), tz)
        assert before.utcoffset() == timedelta(hours=1)
        assert after.utcoffset() == timedelta(hours=2)
        assert as_utc(after) - as_utc(before) == timedelta(hours=23)


class TestMonthArithmetic:
    """Test calendar month arithmetic."""

    def test_clamps_day(self) -> None:
        """Jan 31 + 1 month clamps to the end of February."""
        assert dt_add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)

    def test_crosses_year(self) -> None:
        """Adding 6 months from July lands in the next year."""
        assert dt_add_months(date(2025, 7, 1), 6) == date(2026, 1, 1)


class TestParsing:
    """Test parsing and serialization."""

    def test_round_trip_iso(self) -> None:
        """Serialized instants parse back to the same instant."""
        instant = datetime(2025, 1, 27, 23, 0, tzinfo=UTC)
        assert dt_parse_utc(dt_to_iso(instant)) == instant

    def test_iso_is_utc(self) -> None:
        """Local instants are serialized in UTC."""
        local = datetime(2025, 1, 1, 1, 0, tzinfo=ZoneInfo("Europe/Berlin"))
        assert dt_to_iso(local) == "2025-01-01T00:00:00+00:00"

    @pytest.mark.parametrize("value", [None, "", "yesterday-ish"])
    def test_unparseable_returns_none(self, value: str | None) -> None:
        """Empty or garbage input yields None."""
        assert dt_parse_utc(value) is None

    def test_epoch_seconds(self) -> None:
        """Instants convert to seconds since the epoch."""
        assert dt_to_epoch_seconds(EPOCH + timedelta(days=100)) == 100 * 86400


@freeze_time("2025-01-15 12:00:00", tz_offset=0)
def test_dt_now_utc_is_aware() -> None:
    """The current time is returned in UTC."""
    now = dt_now_utc()
    assert now == datetime(2025, 1, 15, 12, 0, tzinfo=UTC)
    assert now.utcoffset() == timedelta(0)
