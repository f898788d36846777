#!/usr/bin/env python3
"""
Operator tool: run one scheduler rule by hand, or inspect recent activity.

Dispatching through this script goes through the same claim and run-log
constraints as the loop, so it cannot double-send a rule/date/kind that
the loop already handled.

Usage:
    python scripts/dispatch_rule.py --rule-id 3 --dry-run
    python scripts/dispatch_rule.py --rule-id 3 --date 2024-03-10
    python scripts/dispatch_rule.py --recent
    python scripts/dispatch_rule.py --failures 2024-03-10

Requirements:
    - DATABASE_URL set
    - INFORU_* set (unless --dry-run)
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

# Load environment variables from .env files
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent
load_dotenv(env_path / ".env")
load_dotenv(env_path / ".env.local", override=True)

sys.path.insert(0, str(env_path))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def show_recent_runs(limit: int):
    from reminders.database import get_connection
    from reminders.queries.run_log import get_recent_runs

    async with get_connection() as conn:
        runs = await get_recent_runs(conn, limit=limit)

    if not runs:
        print("No runs recorded yet.")
        return

    for run in runs:
        print(
            f"  #{run['run_id']:<5} rule={run['rule_id']:<3} {run['reminder_kind']:<8} "
            f"target={run['target_date']} ran_at={run['ran_at']} "
            f"{run['status']:<9} {run['sent_count']}/{run['total_eligible']} sent"
            + (f" ({run['error_summary']})" if run["error_summary"] else "")
        )


async def show_failures(day: date):
    from reminders.database import get_connection
    from reminders.queries.delivery_log import get_deliveries_for_date

    async with get_connection() as conn:
        failures = await get_deliveries_for_date(conn, day, failed_only=True)

    print(f"{len(failures)} failed deliveries on {day} (UTC)")
    for delivery in failures:
        print(
            f"  shift={delivery['shift_id']:<6} {delivery['reminder_kind']:<8} "
            f"at={delivery['sent_at']} error={delivery['error']}"
        )


async def dispatch(rule_id: int, target: date | None, dry_run: bool) -> int:
    from reminders.config import get_reminder_timezone
    from reminders.database import get_connection
    from reminders.notifications.channels.base import mask_address
    from reminders.notifications.channels.inforu import InforuSmsChannel
    from reminders.notifications.dispatcher import dispatch_reminder
    from reminders.notifications.scheduler import target_date_for
    from reminders.notifications.templates import build_render_context, render_message
    from reminders.queries.eligibility import select_eligible
    from reminders.queries.rules import get_rule
    from reminders.timezone import now_in_timezone

    async with get_connection() as conn:
        rule = await get_rule(conn, rule_id)

    if rule is None:
        print(f"Rule {rule_id} not found")
        return 1

    if not rule["is_enabled"]:
        print(f"Note: rule {rule_id} is disabled; running it anyway")

    if target is None:
        target = target_date_for(rule, now_in_timezone(get_reminder_timezone()))

    print(
        f"Rule {rule_id}: {rule['day_group']} {rule['reminder_kind']} "
        f"at {rule['time_of_day']}, target date {target}"
    )

    if dry_run:
        async with get_connection() as conn:
            eligible = await select_eligible(conn, target, rule["reminder_kind"])
        print(f"{len(eligible)} eligible shifts")
        for row in eligible:
            message = render_message(
                rule["message_template"], build_render_context(row, target)
            )
            print(f"  shift={row['shift_id']} {mask_address(row['mobile_phone'])}: {message}")
        return 0

    result = await dispatch_reminder(rule, target, InforuSmsChannel.from_env())

    if "skipped" in result:
        print(f"Skipped: {result['skipped']}")
        return 1

    print(
        f"{result['status']}: {result['sent_count']} sent, "
        f"{result['failed_count']} failed of {result['total_eligible']}"
    )
    if not result["recorded"]:
        print("Run was already recorded by another instance")
    return 0


async def main(args) -> int:
    from reminders.database import close_engine

    try:
        if args.recent:
            await show_recent_runs(args.limit)
            return 0
        if args.failures:
            await show_failures(args.failures)
            return 0
        return await dispatch(args.rule_id, args.date, args.dry_run)
    finally:
        await close_engine()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run or inspect reminder rules")
    parser.add_argument("--rule-id", type=int, help="Rule to dispatch")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Target date (YYYY-MM-DD). Defaults to today plus the rule's offset",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print eligible recipients and rendered messages without sending",
    )
    parser.add_argument("--recent", action="store_true", help="Show recent runs")
    parser.add_argument("--limit", type=int, default=20, help="Rows for --recent")
    parser.add_argument(
        "--failures",
        type=date.fromisoformat,
        metavar="DATE",
        help="Show failed deliveries for a UTC date",
    )
    args = parser.parse_args()

    if not (args.recent or args.failures or args.rule_id):
        parser.error("one of --rule-id, --recent or --failures is required")

    sys.exit(asyncio.run(main(args)))
