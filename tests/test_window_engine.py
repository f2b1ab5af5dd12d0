"""Tests for WindowEngine - pure logic, no HA fixtures needed.

These tests validate window keys and bounds for every window type without
requiring any Home Assistant mocking or integration setup.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from custom_components.habit_targets import const
from custom_components.habit_targets.engines.window_engine import (
    WindowEngine,
    WindowType,
)
from custom_components.habit_targets.utils.dt_utils import EPOCH

BERLIN = "Europe/Berlin"

# (window_type, custom_duration_days)
ALL_TYPES = [
    (const.WINDOW_TYPE_WEEK, None),
    (const.WINDOW_TYPE_2_WEEKS, None),
    (const.WINDOW_TYPE_MONTH, None),
    (const.WINDOW_TYPE_2_MONTHS, None),
    (const.WINDOW_TYPE_6_MONTHS, None),
    (const.WINDOW_TYPE_YEAR, None),
    (const.WINDOW_TYPE_CUSTOM, 10),
]

SAMPLE_INSTANTS = [
    datetime(2024, 2, 29, 12, 0, tzinfo=UTC),
    datetime(2024, 12, 31, 23, 30, tzinfo=UTC),
    datetime(2025, 3, 30, 1, 30, tzinfo=UTC),
    datetime(2025, 10, 26, 0, 59, tzinfo=UTC),
]


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


# =============================================================================
# TEST: INVARIANTS FOR EVERY TYPE
# =============================================================================


class TestWindowInvariants:
    """Bounds contain `now` and the key is stable across the window."""

    @pytest.mark.parametrize(("window_type", "custom_days"), ALL_TYPES)
    @pytest.mark.parametrize("now", SAMPLE_INSTANTS)
    @pytest.mark.parametrize("timezone", ["UTC", BERLIN, "America/Los_Angeles"])
    def test_bounds_contain_now(
        self,
        window_type: str,
        custom_days: int | None,
        now: datetime,
        timezone: str,
    ) -> None:
        """start <= now < end, and start < end."""
        window = WindowEngine.compute_window(window_type, timezone, now, custom_days)
        assert window.bounds.start < window.bounds.end
        assert window.bounds.start <= now < window.bounds.end
        assert window.bounds.contains(now)

    @pytest.mark.parametrize(("window_type", "custom_days"), ALL_TYPES)
    @pytest.mark.parametrize("timezone", ["UTC", BERLIN])
    def test_key_constant_inside_window(
        self, window_type: str, custom_days: int | None, timezone: str
    ) -> None:
        """Every instant in [start, end) shares the key; `end` starts a new one."""
        now = _utc(2025, 5, 14, 9, 0)
        window = WindowEngine.compute_window(window_type, timezone, now, custom_days)
        last = window.bounds.end - timedelta(microseconds=1)

        assert (
            WindowEngine.compute_window_key(
                window_type, timezone, window.bounds.start, custom_days
            )
            == window.key
        )
        assert (
            WindowEngine.compute_window_key(window_type, timezone, last, custom_days)
            == window.key
        )
        following = WindowEngine.compute_window(
            window_type, timezone, window.bounds.end, custom_days
        )
        assert following.key != window.key
        assert following.bounds.start == window.bounds.end

    def test_key_and_bounds_helpers_agree(self) -> None:
        """compute_window_key/bounds return the parts of compute_window."""
        now = _utc(2025, 8, 1, 10, 0)
        window = WindowEngine.compute_window(const.WINDOW_TYPE_MONTH, BERLIN, now)
        assert WindowEngine.compute_window_key(
            const.WINDOW_TYPE_MONTH, BERLIN, now
        ) == window.key
        assert WindowEngine.compute_window_bounds(
            const.WINDOW_TYPE_MONTH, BERLIN, now
        ) == window.bounds


# =============================================================================
# TEST: WEEK
# =============================================================================


class TestWeek:
    """ISO week windows."""

    def test_week_in_berlin(self) -> None:
        """Bounds are local Monday midnights expressed in UTC."""
        window = WindowEngine.compute_window(
            const.WINDOW_TYPE_WEEK, BERLIN, _utc(2025, 1, 29, 12, 0)
        )
        assert window.key == "2025-W05"
        assert window.bounds.start == _utc(2025, 1, 26, 23, 0)
        assert window.bounds.end == _utc(2025, 2, 2, 23, 0)

    def test_created_monday_then_next_week(self) -> None:
        """A week created on Monday is W05; eight days later it is W06."""
        start = _utc(2025, 1, 27)
        window = WindowEngine.compute_window(const.WINDOW_TYPE_WEEK, "UTC", start)
        assert window.key == "2025-W05"
        assert window.bounds.start == start
        assert window.bounds.end == start + timedelta(days=7)

        later = WindowEngine.compute_window(
            const.WINDOW_TYPE_WEEK, "UTC", start + timedelta(days=8)
        )
        assert later.key == "2025-W06"

    @pytest.mark.parametrize(
        ("now", "expected"),
        [
            (_utc(2024, 12, 30, 12, 0), "2025-W01"),
            (_utc(2024, 12, 29, 12, 0), "2024-W52"),
            (_utc(2027, 1, 1, 12, 0), "2026-W53"),
            (_utc(2021, 1, 3, 12, 0), "2020-W53"),
        ],
    )
    def test_iso_year_boundary(self, now: datetime, expected: str) -> None:
        """The key uses the ISO year, not the calendar year."""
        assert WindowEngine.compute_window_key(const.WINDOW_TYPE_WEEK, "UTC", now) == expected

    def test_timezone_changes_the_week(self) -> None:
        """Sunday 23:30 UTC is already Monday in Berlin."""
        now = _utc(2025, 1, 26, 23, 30)
        assert WindowEngine.compute_window_key(const.WINDOW_TYPE_WEEK, "UTC", now) == "2025-W04"
        assert WindowEngine.compute_window_key(const.WINDOW_TYPE_WEEK, BERLIN, now) == "2025-W05"

    def test_dst_week_is_shorter(self) -> None:
        """The week containing spring-forward lasts 167 hours in Berlin."""
        bounds = WindowEngine.compute_window_bounds(
            const.WINDOW_TYPE_WEEK, BERLIN, _utc(2025, 3, 27, 12, 0)
        )
        assert bounds.end - bounds.start == timedelta(hours=167)


# =============================================================================
# TEST: CALENDAR TYPES
# =============================================================================


class TestCalendarWindows:
    """Fortnight, month, bimester, half-year and year windows."""

    def test_two_weeks_anchor(self) -> None:
        """Fortnights are counted from Monday 1970-01-05."""
        window = WindowEngine.compute_window(
            const.WINDOW_TYPE_2_WEEKS, "UTC", _utc(2025, 1, 19, 23, 59)
        )
        assert window.key == "biweek-1435"
        assert window.bounds.start == _utc(2025, 1, 6)
        assert window.bounds.end == _utc(2025, 1, 20)

        assert (
            WindowEngine.compute_window_key(
                const.WINDOW_TYPE_2_WEEKS, "UTC", _utc(2025, 1, 20)
            )
            == "biweek-1436"
        )

    def test_month(self) -> None:
        """Calendar month in local time."""
        window = WindowEngine.compute_window(
            const.WINDOW_TYPE_MONTH, BERLIN, _utc(2025, 2, 15, 8, 0)
        )
        assert window.key == "2025-02"
        assert window.bounds.start == _utc(2025, 1, 31, 23, 0)
        assert window.bounds.end == _utc(2025, 2, 28, 23, 0)

    def test_month_across_dst(self) -> None:
        """March ends at 22:00 UTC once Berlin is on summer time."""
        bounds = WindowEngine.compute_window_bounds(
            const.WINDOW_TYPE_MONTH, BERLIN, _utc(2025, 3, 10)
        )
        assert bounds.start == _utc(2025, 2, 28, 23, 0)
        assert bounds.end == _utc(2025, 3, 31, 22, 0)

    @pytest.mark.parametrize(
        ("now", "key", "start", "end"),
        [
            (_utc(2025, 1, 1), "2025-B1", _utc(2025, 1, 1), _utc(2025, 3, 1)),
            (_utc(2025, 4, 10), "2025-B2", _utc(2025, 3, 1), _utc(2025, 5, 1)),
            (_utc(2025, 12, 31, 23), "2025-B6", _utc(2025, 11, 1), _utc(2026, 1, 1)),
        ],
    )
    def test_two_months(
        self, now: datetime, key: str, start: datetime, end: datetime
    ) -> None:
        """Calendar bimesters."""
        window = WindowEngine.compute_window(const.WINDOW_TYPE_2_MONTHS, "UTC", now)
        assert window.key == key
        assert (window.bounds.start, window.bounds.end) == (start, end)

    @pytest.mark.parametrize(
        ("now", "key", "start", "end"),
        [
            (_utc(2025, 6, 30, 23), "2025-H1", _utc(2025, 1, 1), _utc(2025, 7, 1)),
            (_utc(2025, 7, 1), "2025-H2", _utc(2025, 7, 1), _utc(2026, 1, 1)),
        ],
    )
    def test_six_months(
        self, now: datetime, key: str, start: datetime, end: datetime
    ) -> None:
        """Calendar halves."""
        window = WindowEngine.compute_window(const.WINDOW_TYPE_6_MONTHS, "UTC", now)
        assert window.key == key
        assert (window.bounds.start, window.bounds.end) == (start, end)

    def test_year_uses_local_calendar(self) -> None:
        """New Year's Eve 23:30 UTC is already the next year in Berlin."""
        now = _utc(2024, 12, 31, 23, 30)
        assert WindowEngine.compute_window_key(const.WINDOW_TYPE_YEAR, "UTC", now) == "2024"
        window = WindowEngine.compute_window(const.WINDOW_TYPE_YEAR, BERLIN, now)
        assert window.key == "2025"
        assert window.bounds.start == _utc(2024, 12, 31, 23, 0)


# =============================================================================
# TEST: CUSTOM AND FALLBACK
# =============================================================================


class TestCustomWindows:
    """Epoch-anchored custom buckets."""

    def test_day_100_with_14_days(self) -> None:
        """Epoch day 100 in 14-day buckets is bucket 7: days 98 to 112."""
        now = EPOCH + timedelta(days=100, hours=5)
        window = WindowEngine.compute_window(const.WINDOW_TYPE_CUSTOM, "UTC", now, 14)
        assert window.key == "custom-7"
        assert window.bounds.start == EPOCH + timedelta(days=98)
        assert window.bounds.end == EPOCH + timedelta(days=112)

    def test_timezone_independent(self) -> None:
        """Custom buckets ignore the timezone."""
        now = EPOCH + timedelta(days=100)
        utc_window = WindowEngine.compute_window(const.WINDOW_TYPE_CUSTOM, "UTC", now, 14)
        tokyo_window = WindowEngine.compute_window(
            const.WINDOW_TYPE_CUSTOM, "Asia/Tokyo", now, 14
        )
        assert utc_window == tokyo_window

    @pytest.mark.parametrize("custom_days", [None, 0, -3, True, 2.5])
    def test_invalid_duration_raises(self, custom_days: object) -> None:
        """CUSTOM needs a positive integer duration."""
        with pytest.raises(ValueError):
            WindowEngine.compute_window(
                const.WINDOW_TYPE_CUSTOM, "UTC", _utc(2025, 1, 1), custom_days  # type: ignore[arg-type]
            )

    def test_unknown_window_type_falls_back(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Unknown types get 30-day epoch buckets and a warning."""
        now = EPOCH + timedelta(days=100)
        window = WindowEngine.compute_window("FORTNIGHTLY", "UTC", now)
        assert window.key == "fallback-3"
        assert window.bounds.start == EPOCH + timedelta(days=90)
        assert window.bounds.end == EPOCH + timedelta(days=120)
        assert "FORTNIGHTLY" in caplog.text

    def test_unknown_timezone_raises(self) -> None:
        """Timezones are never guessed."""
        with pytest.raises(ValueError):
            WindowEngine.compute_window(
                const.WINDOW_TYPE_WEEK, "Nowhere/Special", _utc(2025, 1, 1)
            )


class TestParseWindowType:
    """Parsing raw window type values."""

    def test_known_values(self) -> None:
        """Every stored value parses to its enum member."""
        for raw in const.WINDOW_TYPE_OPTIONS:
            parsed = WindowEngine.parse_window_type(raw)
            assert parsed is not None
            assert parsed == raw

    def test_unknown_value(self) -> None:
        """Unknown values parse to None."""
        assert WindowEngine.parse_window_type("week") is None
        assert WindowType.TWO_WEEKS.value == "2_WEEKS"
