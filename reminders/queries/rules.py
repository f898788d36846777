"""Database queries for scheduler rules."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import scheduler_rules


async def list_enabled_rules(conn: AsyncConnection) -> list[dict]:
    """Get all enabled scheduler rules, ordered by rule_id."""
    result = await conn.execute(
        select(scheduler_rules)
        .where(scheduler_rules.c.is_enabled.is_(True))
        .order_by(scheduler_rules.c.rule_id)
    )
    return [dict(row) for row in result.mappings()]


async def get_rule(conn: AsyncConnection, rule_id: int) -> dict | None:
    """Get a single rule by ID, enabled or not."""
    result = await conn.execute(
        select(scheduler_rules).where(scheduler_rules.c.rule_id == rule_id)
    )
    row = result.mappings().first()
    return dict(row) if row else None
