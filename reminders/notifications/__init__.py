"""
Scheduled SMS reminders for volunteer shifts.

Public API:
    init_scheduler(channel) - Start the reminder tick job (app startup)
    shutdown_scheduler() - Stop it (app shutdown)
    dispatch_reminder(rule, target_date, channel) - Run one rule for one date
    render_message(template, context) - Substitute template placeholders
"""

from .dispatcher import derive_run_status, dispatch_reminder
from .scheduler import (
    ReminderTicker,
    get_ticker,
    init_scheduler,
    shutdown_scheduler,
)
from .templates import build_render_context, render_message

__all__ = [
    # Scheduling
    "ReminderTicker",
    "init_scheduler",
    "shutdown_scheduler",
    "get_ticker",
    # Dispatch
    "dispatch_reminder",
    "derive_run_status",
    # Rendering
    "render_message",
    "build_render_context",
]
