"""
Eligibility query: which shifts get a reminder for a target date.

A shift is eligible when it falls on the target date, its volunteer has
opted in with a non-empty phone number, and no successful delivery of
the same reminder kind exists for it. Read-only; safe to call repeatedly.
"""

from datetime import date, datetime, time, timedelta

from sqlalchemy import and_, exists, select
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import DeliveryStatus
from ..tables import delivery_log, shifts, volunteers


def eligibility_window(target_date: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) window covering the whole target date."""
    start = datetime.combine(target_date, time.min)
    return start, start + timedelta(days=1)


async def select_eligible(
    conn: AsyncConnection,
    target_date: date,
    reminder_kind: str,
) -> list[dict]:
    """
    Get (shift, volunteer) rows eligible for a reminder.

    Returns:
        List of dicts with shift_id, shift_date, shift_name, car_id,
        volunteer_id, first_name, last_name, mapping_name, mobile_phone,
        ordered by shift_date then shift_id.
    """
    start, end = eligibility_window(target_date)

    already_sent = exists().where(
        and_(
            delivery_log.c.shift_id == shifts.c.shift_id,
            delivery_log.c.reminder_kind == reminder_kind,
            delivery_log.c.status == DeliveryStatus.success.value,
        )
    )

    result = await conn.execute(
        select(
            shifts.c.shift_id,
            shifts.c.shift_date,
            shifts.c.shift_name,
            shifts.c.car_id,
            volunteers.c.volunteer_id,
            volunteers.c.first_name,
            volunteers.c.last_name,
            volunteers.c.mapping_name,
            volunteers.c.mobile_phone,
        )
        .select_from(
            shifts.join(volunteers, shifts.c.volunteer_id == volunteers.c.volunteer_id)
        )
        .where(shifts.c.shift_date >= start)
        .where(shifts.c.shift_date < end)
        .where(volunteers.c.sms_opt_in.is_(True))
        .where(volunteers.c.mobile_phone.isnot(None))
        .where(volunteers.c.mobile_phone != "")
        .where(~already_sent)
        .order_by(shifts.c.shift_date, shifts.c.shift_id)
    )
    return [dict(row) for row in result.mappings()]
