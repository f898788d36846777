"""
APScheduler-driven reminder ticks.

An interval job wakes every tick, matches enabled rules against the
current wall-clock time in the configured timezone, and dispatches the
ones that are due.

Matching is exact: a rule fires only on a tick whose HH:MM equals its
time_of_day, on a weekday in its day group. A tick the process was not
running for (or one that misfired by more than the grace period) is
skipped, not caught up.

Correctness across instances rests on the run ledger's unique
constraint; the existence check here only avoids needless work.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Callable

import pytz
import sentry_sdk
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from reminders.config import get_reminder_timezone, get_tick_interval_seconds
from reminders.constants import DAY_GROUP_WEEKDAYS
from reminders.database import get_connection
from reminders.notifications.channels.base import NotificationChannel
from reminders.notifications.channels.inforu import InforuSmsChannel
from reminders.notifications.dispatcher import dispatch_reminder
from reminders.queries.rules import list_enabled_rules
from reminders.queries.run_log import run_exists
from reminders.timezone import format_hhmm, now_in_timezone

logger = logging.getLogger(__name__)

TICK_JOB_ID = "reminder_tick"

# A tick starting later than this is dropped; the next one covers the minute
MISFIRE_GRACE_SECONDS = 30

# How long shutdown waits for an in-flight tick before cancelling it
SHUTDOWN_GRACE_SECONDS = 30


def weekdays_for_group(day_group: str) -> frozenset[int]:
    """Weekdays (date.weekday() numbering) in a day group; empty if unknown."""
    return DAY_GROUP_WEEKDAYS.get(day_group, frozenset())


def rule_matches(rule: dict, now: datetime) -> bool:
    """
    Check whether a rule is due at `now` (exact HH:MM and day group).

    A rule with an unknown day group never matches; it is reported on
    the minute it would otherwise have fired.
    """
    if rule["time_of_day"] != format_hhmm(now):
        return False

    weekdays = weekdays_for_group(rule["day_group"])
    if not weekdays:
        logger.warning(f"Rule {rule['rule_id']} has unknown day group {rule['day_group']!r}")
    return now.weekday() in weekdays


def target_date_for(rule: dict, now: datetime) -> date:
    """Today plus the rule's day offset."""
    return now.date() + timedelta(days=rule["days_before_shift"])


class ReminderTicker:
    """Evaluates all enabled rules once per tick; run as an APScheduler job."""

    def __init__(
        self,
        channel: NotificationChannel,
        tz_name: str,
        clock: Callable[[], datetime] | None = None,
    ):
        self._channel = channel
        self._tz_name = tz_name
        self._clock = clock or (lambda: now_in_timezone(tz_name))
        self._stop_event = asyncio.Event()
        self._tick_lock = asyncio.Lock()
        self.last_tick_at: datetime | None = None

    @property
    def is_stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Signal the current tick to stop at the next rule/recipient boundary."""
        self._stop_event.set()

    async def tick(self) -> int:
        """
        Evaluate every enabled rule once.

        An error in one rule is logged and does not affect the others.

        Returns:
            Number of rules dispatched this tick
        """
        now = self._clock()
        self.last_tick_at = now

        async with get_connection() as conn:
            rules = await list_enabled_rules(conn)

        dispatched = 0
        for rule in rules:
            if self._stop_event.is_set():
                break
            try:
                if await self._evaluate_rule(rule, now):
                    dispatched += 1
            except Exception as e:
                logger.exception(f"Error evaluating rule {rule.get('rule_id')}")
                sentry_sdk.capture_exception(e)

        return dispatched

    async def _evaluate_rule(self, rule: dict, now: datetime) -> bool:
        if not rule_matches(rule, now):
            return False

        rule_id = rule["rule_id"]
        reminder_kind = rule["reminder_kind"]
        target_date = target_date_for(rule, now)

        async with get_connection() as conn:
            already_ran = await run_exists(conn, rule_id, target_date, reminder_kind)
        if already_ran:
            logger.debug(f"Skipping rule {rule_id}: already ran for {target_date} {reminder_kind}")
            return False

        logger.info(
            f"Triggering reminder run: rule={rule_id}, day_group={rule['day_group']}, "
            f"kind={reminder_kind}, target_date={target_date}"
        )
        result = await dispatch_reminder(rule, target_date, self._channel, self._stop_event)
        return "skipped" not in result

    async def run_tick(self) -> None:
        """Job body: one tick, with errors reported instead of raised."""
        if self._stop_event.is_set():
            return

        async with self._tick_lock:
            try:
                await self.tick()
            except Exception as e:
                logger.exception("Reminder tick failed")
                sentry_sdk.capture_exception(e)

    async def wait_idle(self, timeout: float) -> bool:
        """Wait for an in-flight tick to finish. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._tick_lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        self._tick_lock.release()
        return True


# =============================================================================
# Scheduler initialization and shutdown
# =============================================================================

_scheduler: AsyncIOScheduler | None = None
_ticker: ReminderTicker | None = None


def init_scheduler(channel: NotificationChannel | None = None) -> AsyncIOScheduler:
    """
    Start APScheduler with the reminder tick job.

    Call this during app startup (in FastAPI lifespan).

    Raises:
        ConfigurationError: If timezone, tick interval or gateway settings are invalid
    """
    global _scheduler, _ticker

    if _scheduler is not None:
        return _scheduler

    if channel is None:
        channel = InforuSmsChannel.from_env()

    tz_name = get_reminder_timezone()
    tick_seconds = get_tick_interval_seconds()

    _ticker = ReminderTicker(channel, tz_name=tz_name)
    _scheduler = AsyncIOScheduler(
        timezone=pytz.timezone(tz_name),
        job_defaults={
            "coalesce": True,  # Never replay missed ticks
            "max_instances": 1,
            "misfire_grace_time": MISFIRE_GRACE_SECONDS,
        },
    )
    _scheduler.add_job(
        _ticker.run_tick,
        trigger="interval",
        seconds=tick_seconds,
        id=TICK_JOB_ID,
        replace_existing=True,
        next_run_time=now_in_timezone(tz_name),
    )
    _scheduler.start()

    logger.info(f"Reminder scheduler started (timezone={tz_name}, tick={tick_seconds}s)")
    return _scheduler


def get_ticker() -> ReminderTicker | None:
    return _ticker


async def shutdown_scheduler() -> None:
    """
    Stop the tick job, letting an in-flight tick reach a boundary first.

    Call this during app shutdown.
    """
    global _scheduler, _ticker

    if _ticker is not None:
        _ticker.stop()
        if not await _ticker.wait_idle(SHUTDOWN_GRACE_SECONDS):
            logger.warning("Reminder tick did not stop in time, cancelling it")

    if _scheduler is not None:
        _scheduler.shutdown(wait=True)
        logger.info("Reminder scheduler stopped")

    _scheduler = None
    _ticker = None
