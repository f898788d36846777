"""Database queries for the append-only delivery log."""

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncConnection

from ..enums import DeliveryStatus
from ..tables import delivery_log


async def append_delivery(
    conn: AsyncConnection,
    shift_id: int,
    reminder_kind: str,
    status: DeliveryStatus,
    error: str | None = None,
    sent_at: datetime | None = None,
) -> int:
    """
    Append one send outcome and commit it.

    Returns:
        The new delivery_id
    """
    result = await conn.execute(
        insert(delivery_log)
        .values(
            shift_id=shift_id,
            reminder_kind=reminder_kind,
            sent_at=sent_at or datetime.now(timezone.utc),
            status=status.value,
            error=error,
        )
        .returning(delivery_log.c.delivery_id)
    )
    delivery_id = result.scalar_one()
    await conn.commit()
    return delivery_id


async def get_deliveries_between(
    conn: AsyncConnection,
    start: datetime,
    end: datetime,
    status: DeliveryStatus | None = None,
) -> list[dict]:
    """Get deliveries with start <= sent_at < end, oldest first."""
    query = (
        select(delivery_log)
        .where(delivery_log.c.sent_at >= start)
        .where(delivery_log.c.sent_at < end)
    )
    if status is not None:
        query = query.where(delivery_log.c.status == status.value)

    result = await conn.execute(
        query.order_by(delivery_log.c.sent_at, delivery_log.c.delivery_id)
    )
    return [dict(row) for row in result.mappings()]


async def get_deliveries_for_date(
    conn: AsyncConnection,
    day: date,
    failed_only: bool = False,
) -> list[dict]:
    """Get deliveries sent on a UTC calendar day."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return await get_deliveries_between(
        conn,
        start,
        start + timedelta(days=1),
        status=DeliveryStatus.fail if failed_only else None,
    )
