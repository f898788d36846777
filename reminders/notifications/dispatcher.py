"""
Reminder dispatcher - sends one rule's reminders for one target date.

Flow for a single (rule, target_date):
1. Claim the rule/date/kind (unless disabled) so overlapping ticks on
   other instances skip it before sending anything
2. Select eligible shifts
3. For each: render, send, append a delivery row (continue on error)
4. Record the run; a unique-constraint conflict means another instance
   already recorded it and is not an error
"""

import asyncio
import logging
from datetime import date, datetime, timezone

import sentry_sdk

from reminders.config import claim_before_dispatch
from reminders.constants import INTERNAL_ERROR
from reminders.database import get_connection
from reminders.enums import DeliveryStatus, RunStatus
from reminders.notifications.channels.base import NotificationChannel, mask_address
from reminders.notifications.templates import build_render_context, render_message
from reminders.queries.delivery_log import append_delivery
from reminders.queries.eligibility import select_eligible
from reminders.queries.run_log import release_claim, try_claim_run, try_insert_run

logger = logging.getLogger(__name__)


def derive_run_status(total_eligible: int, sent_count: int, failed_count: int) -> RunStatus:
    """
    Derive the run status from its counts.

    Nothing to send, or nothing failed -> Completed; nothing sent -> Failed;
    otherwise Partial.
    """
    if total_eligible == 0 or failed_count == 0:
        return RunStatus.completed
    if sent_count == 0:
        return RunStatus.failed
    return RunStatus.partial


async def log_delivery(
    shift_id: int,
    reminder_kind: str,
    status: DeliveryStatus,
    error: str | None = None,
) -> None:
    """Append a delivery row. Failures are logged, never raised."""
    try:
        async with get_connection() as conn:
            await append_delivery(
                conn,
                shift_id=shift_id,
                reminder_kind=reminder_kind,
                status=status,
                error=error,
            )
    except Exception as e:
        logger.exception(f"Failed to write delivery log for shift {shift_id}")
        sentry_sdk.capture_exception(e)


async def _release_claim(rule_id: int, target_date: date, reminder_kind: str) -> None:
    """Drop a claim so a later tick can retry. Failures are logged, never raised."""
    try:
        async with get_connection() as conn:
            await release_claim(conn, rule_id, target_date, reminder_kind)
    except Exception as e:
        logger.exception(
            f"Failed to release claim for rule {rule_id} on {target_date} {reminder_kind}"
        )
        sentry_sdk.capture_exception(e)


async def dispatch_reminder(
    rule: dict,
    target_date: date,
    channel: NotificationChannel,
    stop_event: asyncio.Event | None = None,
) -> dict:
    """
    Send reminders for one rule and target date, then record the run.

    Once claimed, the claim is released again whenever no run row gets
    written: on interruption, and on any exception (cancellation
    included), which is re-raised.

    Args:
        rule: scheduler_rules row
        target_date: Calendar date the reminders concern
        channel: Where messages are sent
        stop_event: When set, remaining recipients are left for later

    Returns:
        Dict with the run columns plus "recorded" (False if another
        instance recorded it first), or {"skipped": reason, ...} when
        the dispatch was claimed elsewhere or interrupted.
    """
    rule_id = rule["rule_id"]
    reminder_kind = rule["reminder_kind"]
    use_claim = claim_before_dispatch()

    if use_claim:
        async with get_connection() as conn:
            claimed = await try_claim_run(conn, rule_id, target_date, reminder_kind)
        if not claimed:
            logger.debug(
                f"Rule {rule_id} already claimed for {target_date} {reminder_kind}, skipping"
            )
            return {"skipped": "already_claimed"}

    logger.info(
        f"Dispatch starting: rule={rule_id}, kind={reminder_kind}, target_date={target_date}"
    )

    try:
        result = await _send_and_record(rule, target_date, channel, stop_event)
    except BaseException:
        if use_claim:
            await _release_claim(rule_id, target_date, reminder_kind)
        raise

    if use_claim and result.get("skipped") == "interrupted":
        await _release_claim(rule_id, target_date, reminder_kind)
    return result


async def _send_and_record(
    rule: dict,
    target_date: date,
    channel: NotificationChannel,
    stop_event: asyncio.Event | None,
) -> dict:
    rule_id = rule["rule_id"]
    reminder_kind = rule["reminder_kind"]

    async with get_connection() as conn:
        eligible = await select_eligible(conn, target_date, reminder_kind)

    total_eligible = len(eligible)
    sent_count = 0
    failed_count = 0
    interrupted = False

    logger.info(f"Found {total_eligible} eligible shifts for {reminder_kind} on {target_date}")

    for row in eligible:
        if stop_event is not None and stop_event.is_set():
            interrupted = True
            break

        shift_id = row["shift_id"]
        try:
            context = build_render_context(row, target_date)
            message = render_message(rule["message_template"], context)
            result = await channel.send(row["mobile_phone"], message)
        except Exception as e:
            failed_count += 1
            logger.exception(f"Error sending reminder for shift {shift_id}")
            sentry_sdk.capture_exception(e)
            await log_delivery(shift_id, reminder_kind, DeliveryStatus.fail, INTERNAL_ERROR)
            continue

        if result.success:
            sent_count += 1
            await log_delivery(shift_id, reminder_kind, DeliveryStatus.success)
        else:
            failed_count += 1
            error = result.error.value if result.error else None
            logger.warning(
                f"Reminder failed for shift {shift_id} "
                f"({mask_address(row['mobile_phone'])}): {error}"
            )
            await log_delivery(shift_id, reminder_kind, DeliveryStatus.fail, error)

    if interrupted:
        logger.info(
            f"Dispatch for rule {rule_id} interrupted after "
            f"{sent_count + failed_count} of {total_eligible} shifts; run not recorded"
        )
        return {
            "skipped": "interrupted",
            "total_eligible": total_eligible,
            "sent_count": sent_count,
            "failed_count": failed_count,
        }

    status = derive_run_status(total_eligible, sent_count, failed_count)
    run = {
        "rule_id": rule_id,
        "reminder_kind": reminder_kind,
        "ran_at": datetime.now(timezone.utc),
        "target_date": target_date,
        "total_eligible": total_eligible,
        "sent_count": sent_count,
        "failed_count": failed_count,
        "status": status.value,
        "error_summary": f"{failed_count} messages failed" if failed_count else None,
    }

    async with get_connection() as conn:
        stored = await try_insert_run(conn, run)

    if stored is None:
        logger.debug(
            f"Run for rule {rule_id} on {target_date} {reminder_kind} "
            "already recorded by another instance"
        )

    logger.info(
        f"Dispatch completed: rule={rule_id}, status={status.value}, "
        f"sent={sent_count}, failed={failed_count}"
    )

    return {**run, "recorded": stored is not None}
