"""
Shared constants used across the reminder engine.
"""

from .enums import DayGroup

DEFAULT_TIMEZONE = "Asia/Jerusalem"

# Seconds between scheduler ticks. Must not exceed the one-minute
# granularity of the HH:MM match or a slot can be skipped.
DEFAULT_TICK_SECONDS = 60
MAX_TICK_SECONDS = 60

# Weekdays per day group, using date.weekday() numbering (Monday == 0)
DAY_GROUP_WEEKDAYS: dict[str, frozenset[int]] = {
    DayGroup.sun_thu.value: frozenset({6, 0, 1, 2, 3}),
    DayGroup.fri.value: frozenset({4}),
    DayGroup.sat.value: frozenset({5}),
}

# Localized weekday names, indexed by date.weekday()
WEEKDAY_NAMES = [
    "יום ב׳",  # Monday
    "יום ג׳",  # Tuesday
    "יום ד׳",  # Wednesday
    "יום ה׳",  # Thursday
    "יום ו׳",  # Friday
    "שבת",  # Saturday
    "יום א׳",  # Sunday
]

# Error stored on a delivery row when sending raised instead of returning
INTERNAL_ERROR = "internal error"
