"""Window Engine - Pure logic for target time windows.

Maps `(window_type, timezone, now, custom_duration_days)` to the window that
contains `now`:
- a window key: a stable string shared by every instant of the same window
- window bounds: the half-open interval `[start, end)` as aware UTC datetimes

Each window type is served by exactly one strategy object that produces the
key and the bounds in a single call, so the two can never drift apart.

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
The timezone is always passed in by the caller; there is no implicit default.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from enum import StrEnum
import logging
from typing import ClassVar

from .. import const
from ..utils.dt_utils import (
    EPOCH,
    SECONDS_PER_DAY,
    as_local,
    as_utc,
    dt_add_months,
    dt_to_epoch_seconds,
    local_midnight,
    resolve_timezone,
)

_LOGGER = logging.getLogger(__name__)

# 2_WEEKS windows are consecutive fortnights counted from the first ISO Monday
# after the Unix epoch.
_BIWEEK_ANCHOR = date(1970, 1, 5)


class WindowType(StrEnum):
    """Closed set of supported window types."""

    WEEK = const.WINDOW_TYPE_WEEK
    TWO_WEEKS = const.WINDOW_TYPE_2_WEEKS
    MONTH = const.WINDOW_TYPE_MONTH
    TWO_MONTHS = const.WINDOW_TYPE_2_MONTHS
    SIX_MONTHS = const.WINDOW_TYPE_6_MONTHS
    YEAR = const.WINDOW_TYPE_YEAR
    CUSTOM = const.WINDOW_TYPE_CUSTOM


@dataclass(frozen=True)
class WindowBounds:
    """Half-open interval `[start, end)` in UTC."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        """Return True if the instant falls inside the window."""
        return self.start <= as_utc(instant) < self.end


@dataclass(frozen=True)
class Window:
    """A resolved window: its key together with its bounds."""

    key: str
    bounds: WindowBounds


# =============================================================================
# WINDOW STRATEGIES
# =============================================================================


class WindowStrategy(ABC):
    """Key and bounds computation for one window type."""

    @abstractmethod
    def resolve(
        self, now: datetime, tz: tzinfo, custom_duration_days: int | None
    ) -> Window:
        """Return the window containing `now`."""


class _LocalDaysStrategy(WindowStrategy, ABC):
    """Shared helper for strategies built on local calendar days."""

    @staticmethod
    def _bounds(start_day: date, end_day: date, tz: tzinfo) -> WindowBounds:
        return WindowBounds(
            start=as_utc(local_midnight(start_day, tz)),
            end=as_utc(local_midnight(end_day, tz)),
        )


class IsoWeekStrategy(_LocalDaysStrategy):
    """ISO-8601 week: Monday 00:00 local to the following Monday.

    The key uses the ISO year, which differs from the calendar year for days
    around New Year (2024-12-30 belongs to 2025-W01).
    """

    def resolve(
        self, now: datetime, tz: tzinfo, custom_duration_days: int | None
    ) -> Window:
        today = as_local(now, tz).date()
        iso_year, iso_week, _ = today.isocalendar()
        monday = today - timedelta(days=today.weekday())
        return Window(
            key=f"{iso_year}-W{iso_week:02d}",
            bounds=self._bounds(monday, monday + timedelta(days=7), tz),
        )


class BiweekStrategy(_LocalDaysStrategy):
    """Fixed fortnights anchored to Monday 1970-01-05 in local time."""

    def resolve(
        self, now: datetime, tz: tzinfo, custom_duration_days: int | None
    ) -> Window:
        today = as_local(now, tz).date()
        index = (today - _BIWEEK_ANCHOR).days // 14
        start_day = _BIWEEK_ANCHOR + timedelta(days=index * 14)
        return Window(
            key=f"{const.WINDOW_KEY_PREFIX_BIWEEK}-{index}",
            bounds=self._bounds(start_day, start_day + timedelta(days=14), tz),
        )


class CalendarMonthsStrategy(_LocalDaysStrategy):
    """Calendar-aligned blocks of `span` months (month, bimester, half, year)."""

    def __init__(self, span: int) -> None:
        """Initialize with the block size in months (must divide 12)."""
        self._span = span

    def resolve(
        self, now: datetime, tz: tzinfo, custom_duration_days: int | None
    ) -> Window:
        today = as_local(now, tz).date()
        block = (today.month - 1) // self._span
        start_day = date(today.year, block * self._span + 1, 1)
        return Window(
            key=self._key(today.year, block),
            bounds=self._bounds(start_day, dt_add_months(start_day, self._span), tz),
        )

    def _key(self, year: int, block: int) -> str:
        if self._span == 1:
            return f"{year}-{block + 1:02d}"
        if self._span == 2:
            return f"{year}-B{block + 1}"
        if self._span == 6:
            return f"{year}-H{block + 1}"
        return f"{year}"


class EpochBucketStrategy(WindowStrategy):
    """Fixed-length buckets anchored to the Unix epoch (timezone-independent).

    With `fixed_days` unset the length comes from the target's
    custom_duration_days.
    """

    def __init__(self, prefix: str, fixed_days: int | None = None) -> None:
        """Initialize with the key prefix and an optional fixed length."""
        self._prefix = prefix
        self._fixed_days = fixed_days

    def resolve(
        self, now: datetime, tz: tzinfo, custom_duration_days: int | None
    ) -> Window:
        days = self._fixed_days or validate_custom_duration(custom_duration_days)
        span = days * SECONDS_PER_DAY
        index = int(dt_to_epoch_seconds(now) // span)
        start = EPOCH + timedelta(days=index * days)
        return Window(
            key=f"{self._prefix}-{index}",
            bounds=WindowBounds(start=start, end=start + timedelta(days=days)),
        )


def validate_custom_duration(custom_duration_days: int | None) -> int:
    """Return the custom duration if it is a positive integer.

    Raises:
        ValueError: If missing, not an integer, or below 1.
    """
    if (
        isinstance(custom_duration_days, bool)
        or not isinstance(custom_duration_days, int)
        or custom_duration_days < 1
    ):
        raise ValueError(
            f"custom_duration_days must be a positive integer, got {custom_duration_days!r}"
        )
    return custom_duration_days


# =============================================================================
# WINDOW ENGINE
# =============================================================================


class WindowEngine:
    """Pure logic engine for window keys and bounds.

    All methods are static - no instance state. This enables easy unit testing
    without any Home Assistant mocking.
    """

    STRATEGIES: ClassVar[dict[WindowType, WindowStrategy]] = {
        WindowType.WEEK: IsoWeekStrategy(),
        WindowType.TWO_WEEKS: BiweekStrategy(),
        WindowType.MONTH: CalendarMonthsStrategy(1),
        WindowType.TWO_MONTHS: CalendarMonthsStrategy(2),
        WindowType.SIX_MONTHS: CalendarMonthsStrategy(6),
        WindowType.YEAR: CalendarMonthsStrategy(12),
        WindowType.CUSTOM: EpochBucketStrategy(const.WINDOW_KEY_PREFIX_CUSTOM),
    }

    # Unrecognized types still get a key/bounds pair that agree with each other
    FALLBACK_STRATEGY: ClassVar[WindowStrategy] = EpochBucketStrategy(
        const.WINDOW_KEY_PREFIX_FALLBACK, fixed_days=const.FALLBACK_WINDOW_DAYS
    )

    @staticmethod
    def parse_window_type(window_type: str | WindowType) -> WindowType | None:
        """Return the WindowType for a raw value, or None if unrecognized."""
        try:
            return WindowType(window_type)
        except ValueError:
            return None

    @staticmethod
    def get_strategy(window_type: str | WindowType) -> WindowStrategy:
        """Return the strategy for a window type, falling back when unknown."""
        parsed = WindowEngine.parse_window_type(window_type)
        if parsed is None:
            _LOGGER.warning(
                "Unexpected window type '%s', using %s-day fallback windows",
                window_type,
                const.FALLBACK_WINDOW_DAYS,
            )
            return WindowEngine.FALLBACK_STRATEGY
        return WindowEngine.STRATEGIES[parsed]

    @staticmethod
    def compute_window(
        window_type: str | WindowType,
        timezone: str | tzinfo,
        now: datetime,
        custom_duration_days: int | None = None,
    ) -> Window:
        """Resolve the window containing `now`.

        Args:
            window_type: One of the WindowType values
            timezone: IANA zone name or tzinfo used for local calendar math
            now: Reference instant (aware; naive values are treated as UTC)
            custom_duration_days: Window length, required for CUSTOM

        Returns:
            Window with key and UTC bounds

        Raises:
            ValueError: Unknown timezone or invalid custom duration
        """
        tz = resolve_timezone(timezone)
        strategy = WindowEngine.get_strategy(window_type)
        return strategy.resolve(as_utc(now), tz, custom_duration_days)

    @staticmethod
    def compute_window_key(
        window_type: str | WindowType,
        timezone: str | tzinfo,
        now: datetime,
        custom_duration_days: int | None = None,
    ) -> str:
        """Return the key of the window containing `now`."""
        return WindowEngine.compute_window(
            window_type, timezone, now, custom_duration_days
        ).key

    @staticmethod
    def compute_window_bounds(
        window_type: str | WindowType,
        timezone: str | tzinfo,
        now: datetime,
        custom_duration_days: int | None = None,
    ) -> WindowBounds:
        """Return the `[start, end)` bounds of the window containing `now`."""
        return WindowEngine.compute_window(
            window_type, timezone, now, custom_duration_days
        ).bounds
