"""Enumerated values stored by the reminder engine.

All of them are persisted as plain text columns, so the string value of
each member is what appears in the database.
"""

import enum


class ReminderKind(str, enum.Enum):
    same_day = "SameDay"
    advance = "Advance"


class DayGroup(str, enum.Enum):
    sun_thu = "SunThu"
    fri = "Fri"
    sat = "Sat"


class RunStatus(str, enum.Enum):
    completed = "Completed"
    partial = "Partial"
    failed = "Failed"


class DeliveryStatus(str, enum.Enum):
    success = "Success"
    fail = "Fail"


class SendError(str, enum.Enum):
    """Closed set of reasons a notification channel may report."""

    auth_failed = "auth_failed"
    invalid_address = "invalid_address"
    empty_message = "empty_message"
    quota_exceeded = "quota_exceeded"
    timeout = "timeout"
    network_error = "network_error"
    unexpected = "unexpected"
