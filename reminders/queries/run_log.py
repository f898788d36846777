"""
Run ledger queries.

The unique constraint on (rule_id, target_date, reminder_kind) is what
keeps two loop instances from both recording the same run. Existence
checks here are only an optimization; the insert is the real gate.
"""

from datetime import date

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import scheduler_run_claims, scheduler_run_log


async def run_exists(
    conn: AsyncConnection,
    rule_id: int,
    target_date: date,
    reminder_kind: str,
) -> bool:
    """Check whether a run was already recorded for this rule/date/kind."""
    result = await conn.execute(
        select(scheduler_run_log.c.run_id)
        .where(scheduler_run_log.c.rule_id == rule_id)
        .where(scheduler_run_log.c.target_date == target_date)
        .where(scheduler_run_log.c.reminder_kind == reminder_kind)
        .limit(1)
    )
    return result.first() is not None


async def try_insert_run(conn: AsyncConnection, run: dict) -> dict | None:
    """
    Record a finished dispatch.

    Args:
        conn: Connection without an open transaction
        run: Column values for scheduler_run_log (without run_id)

    Returns:
        The stored row (with run_id), or None if a run for the same
        rule/date/kind already exists.
    """
    try:
        result = await conn.execute(
            insert(scheduler_run_log).values(**run).returning(scheduler_run_log)
        )
        row = result.mappings().first()
        await conn.commit()
        return dict(row)
    except IntegrityError:
        # Another instance recorded this run first
        await conn.rollback()
        return None


async def try_claim_run(
    conn: AsyncConnection,
    rule_id: int,
    target_date: date,
    reminder_kind: str,
) -> bool:
    """
    Reserve a rule/date/kind before dispatching it.

    Returns:
        True if this caller now owns the dispatch, False if it was
        already claimed by someone else.
    """
    try:
        await conn.execute(
            insert(scheduler_run_claims).values(
                rule_id=rule_id,
                target_date=target_date,
                reminder_kind=reminder_kind,
            )
        )
        await conn.commit()
        return True
    except IntegrityError:
        await conn.rollback()
        return False


async def release_claim(
    conn: AsyncConnection,
    rule_id: int,
    target_date: date,
    reminder_kind: str,
) -> None:
    """Drop a claim whose dispatch was interrupted before being recorded."""
    await conn.execute(
        delete(scheduler_run_claims)
        .where(scheduler_run_claims.c.rule_id == rule_id)
        .where(scheduler_run_claims.c.target_date == target_date)
        .where(scheduler_run_claims.c.reminder_kind == reminder_kind)
    )
    await conn.commit()


async def get_recent_runs(conn: AsyncConnection, limit: int = 50) -> list[dict]:
    """Get the most recent runs, newest first."""
    result = await conn.execute(
        select(scheduler_run_log)
        .order_by(scheduler_run_log.c.ran_at.desc(), scheduler_run_log.c.run_id.desc())
        .limit(limit)
    )
    return [dict(row) for row in result.mappings()]
