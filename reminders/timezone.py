"""
Timezone utilities.

The scheduler always works in one fixed zone (never the host's local
zone), so wall-clock matching behaves the same on every deployment.
"""

from datetime import date, datetime

import pytz

from .constants import WEEKDAY_NAMES


def now_in_timezone(tz_name: str) -> datetime:
    """
    Get the current time in the given timezone.

    Args:
        tz_name: Timezone string (e.g., "Asia/Jerusalem")

    Returns:
        Timezone-aware datetime
    """
    tz = pytz.timezone(tz_name)
    return datetime.now(pytz.UTC).astimezone(tz)


def format_hhmm(dt: datetime) -> str:
    """Format the wall-clock time as "HH:MM" (zero-padded, 24-hour)."""
    return dt.strftime("%H:%M")


def format_date(day: date) -> str:
    """Format a date as DD/MM/YYYY."""
    return day.strftime("%d/%m/%Y")


def weekday_name(day: date) -> str:
    """Get the localized weekday name for a date."""
    return WEEKDAY_NAMES[day.weekday()]


def is_valid_timezone(tz_name: str) -> bool:
    """Check that pytz knows the timezone name."""
    try:
        pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        return False
    return True
