# File: utils/dt_utils.py
"""Date and time utilities for Habit Targets.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

⚠️ UTILS PURITY: NO `homeassistant.*` imports allowed.
   Uses standard library: datetime, zoneinfo, and dateutil.

There is deliberately no module-level default timezone: every function that
needs a local calendar takes the zone as an explicit argument.

Functions:
    - resolve_timezone: Turn an IANA name (or tzinfo) into a tzinfo
    - dt_now_utc: Current datetime in UTC
    - as_utc / as_local: Timezone conversion
    - local_midnight: Local calendar day boundary
    - dt_add_months: Calendar month arithmetic with clamping
    - dt_parse_utc: Normalize stored instants to aware UTC datetimes
    - dt_to_iso: Serialize an instant as a UTC ISO 8601 string
    - dt_to_epoch_seconds: Seconds since the Unix epoch
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, tzinfo
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Third-party date utilities (no HA dependency)
from dateutil.relativedelta import relativedelta

_LOGGER = logging.getLogger(__name__)

EPOCH: datetime = datetime(1970, 1, 1, tzinfo=UTC)
SECONDS_PER_DAY = 86400


# ==============================================================================
# Timezone Resolution
# ==============================================================================


def resolve_timezone(tz: str | tzinfo) -> tzinfo:
    """Resolve a caller-supplied timezone.

    Args:
        tz: IANA zone name (e.g. "Europe/Berlin") or an existing tzinfo.

    Returns:
        The tzinfo object for the zone.

    Raises:
        ValueError: If the name is empty or not a known IANA zone.
    """
    if isinstance(tz, tzinfo):
        return tz
    if not tz or not isinstance(tz, str):
        raise ValueError(f"Timezone must be a non-empty IANA name, got {tz!r}")
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as err:
        raise ValueError(f"Unknown timezone: {tz}") from err


# ==============================================================================
# Current Date/Time and Conversion
# ==============================================================================


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC. Naive values are taken to already be UTC."""
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: tzinfo) -> datetime:
    """Convert a datetime into the given local timezone.

    Args:
        dt_obj: Datetime object (naive values are treated as UTC)
        tz: Target timezone

    Returns:
        Datetime expressed in the local timezone
    """
    return as_utc(dt_obj).astimezone(tz)


def local_midnight(day: date, tz: tzinfo) -> datetime:
    """Return 00:00 local time of a calendar day as an aware datetime.

    On the rare zones whose DST transition happens at midnight, zoneinfo
    resolves the wall time with fold=0, which is still inside that day.
    """
    return datetime.combine(day, time.min, tzinfo=tz)


def dt_add_months(day: date, months: int) -> date:
    """Add calendar months to a date, clamping the day of month.

    Example:
        date(2025, 1, 31) + 1 month -> date(2025, 2, 28)
    """
    return day + relativedelta(months=months)


# ==============================================================================
# Parsing / Serialization
# ==============================================================================


def dt_parse_utc(value: str | datetime | None) -> datetime | None:
    """Normalize a stored instant into an aware UTC datetime.

    Args:
        value: ISO 8601 string or datetime. Naive values are treated as UTC,
            which is how every instant in storage is written.

    Returns:
        Aware UTC datetime, or None when the input is empty or unparseable.
    """
    if not value:
        return None

    if isinstance(value, datetime):
        return as_utc(value)

    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value))
        except ValueError:
            _LOGGER.warning("dt_parse_utc: Could not parse datetime '%s'", value)
            return None

    _LOGGER.warning("dt_parse_utc: Unsupported input type %s", type(value).__name__)
    return None


def dt_to_iso(dt_obj: datetime) -> str:
    """Serialize an instant as a UTC ISO 8601 string.

    Example:
        "2025-04-07T14:30:00+00:00"
    """
    return as_utc(dt_obj).isoformat()


def dt_to_epoch_seconds(dt_obj: datetime) -> float:
    """Return seconds since the Unix epoch for an instant."""
    return (as_utc(dt_obj) - EPOCH).total_seconds()
