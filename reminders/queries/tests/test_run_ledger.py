"""Tests for run log, claims and delivery log queries."""

from datetime import date, datetime, timezone

import pytest

from reminders.enums import DeliveryStatus, ReminderKind, RunStatus
from reminders.queries.delivery_log import (
    append_delivery,
    get_deliveries_between,
    get_deliveries_for_date,
)
from reminders.queries.rules import get_rule, list_enabled_rules
from reminders.queries.run_log import (
    get_recent_runs,
    release_claim,
    run_exists,
    try_claim_run,
    try_insert_run,
)

TARGET = date(2024, 3, 10)
SAME_DAY = ReminderKind.same_day.value


def _run(rule_id: int, target_date: date = TARGET, ran_at: datetime | None = None) -> dict:
    return {
        "rule_id": rule_id,
        "reminder_kind": SAME_DAY,
        "ran_at": ran_at or datetime(2024, 3, 10, 5, 0, tzinfo=timezone.utc),
        "target_date": target_date,
        "total_eligible": 3,
        "sent_count": 2,
        "failed_count": 1,
        "status": RunStatus.partial.value,
        "error_summary": "1 messages failed",
    }


class TestRules:
    @pytest.mark.asyncio
    async def test_list_enabled_rules_skips_disabled(self, db_conn, make_rule):
        enabled = await make_rule(day_group="SunThu")
        await make_rule(day_group="Fri", is_enabled=False)

        rules = await list_enabled_rules(db_conn)

        assert [r["rule_id"] for r in rules] == [enabled["rule_id"]]

    @pytest.mark.asyncio
    async def test_get_rule_returns_disabled_rule(self, db_conn, make_rule):
        rule = await make_rule(is_enabled=False)

        stored = await get_rule(db_conn, rule["rule_id"])

        assert stored["rule_id"] == rule["rule_id"]
        assert stored["is_enabled"] is False

    @pytest.mark.asyncio
    async def test_get_rule_missing(self, db_conn):
        assert await get_rule(db_conn, 999) is None


class TestRunLog:
    @pytest.mark.asyncio
    async def test_insert_then_exists(self, db_conn, make_rule):
        rule = await make_rule()

        assert await run_exists(db_conn, rule["rule_id"], TARGET, SAME_DAY) is False
        stored = await try_insert_run(db_conn, _run(rule["rule_id"]))

        assert stored is not None
        assert stored["run_id"] is not None
        assert stored["status"] == "Partial"
        assert await run_exists(db_conn, rule["rule_id"], TARGET, SAME_DAY) is True

    @pytest.mark.asyncio
    async def test_second_insert_for_same_key_returns_none(self, db_conn, make_rule):
        rule = await make_rule()

        first = await try_insert_run(db_conn, _run(rule["rule_id"]))
        second = await try_insert_run(db_conn, _run(rule["rule_id"]))

        assert first is not None
        assert second is None
        runs = await get_recent_runs(db_conn)
        assert len(runs) == 1

    @pytest.mark.asyncio
    async def test_connection_usable_after_conflict(self, db_conn, make_rule):
        rule = await make_rule()
        await try_insert_run(db_conn, _run(rule["rule_id"]))
        await try_insert_run(db_conn, _run(rule["rule_id"]))

        other_day = await try_insert_run(db_conn, _run(rule["rule_id"], date(2024, 3, 11)))

        assert other_day is not None

    @pytest.mark.asyncio
    async def test_recent_runs_newest_first(self, db_conn, make_rule):
        rule = await make_rule()
        await try_insert_run(
            db_conn,
            _run(rule["rule_id"], date(2024, 3, 10), datetime(2024, 3, 10, 5, tzinfo=timezone.utc)),
        )
        await try_insert_run(
            db_conn,
            _run(rule["rule_id"], date(2024, 3, 11), datetime(2024, 3, 11, 5, tzinfo=timezone.utc)),
        )

        runs = await get_recent_runs(db_conn, limit=1)

        assert len(runs) == 1
        assert runs[0]["target_date"] == date(2024, 3, 11)


class TestClaims:
    @pytest.mark.asyncio
    async def test_only_first_claim_wins(self, db_conn, make_rule):
        rule = await make_rule()

        assert await try_claim_run(db_conn, rule["rule_id"], TARGET, SAME_DAY) is True
        assert await try_claim_run(db_conn, rule["rule_id"], TARGET, SAME_DAY) is False

    @pytest.mark.asyncio
    async def test_released_claim_can_be_taken_again(self, db_conn, make_rule):
        rule = await make_rule()
        await try_claim_run(db_conn, rule["rule_id"], TARGET, SAME_DAY)

        await release_claim(db_conn, rule["rule_id"], TARGET, SAME_DAY)

        assert await try_claim_run(db_conn, rule["rule_id"], TARGET, SAME_DAY) is True


class TestDeliveryLog:
    @pytest.mark.asyncio
    async def test_append_and_read_back(self, db_conn, make_volunteer, make_shift):
        volunteer = await make_volunteer()
        shift = await make_shift(volunteer["volunteer_id"], datetime(2024, 3, 10, 8, 0))
        sent_at = datetime(2024, 3, 10, 5, 0, tzinfo=timezone.utc)

        ok_id = await append_delivery(
            db_conn, shift["shift_id"], SAME_DAY, DeliveryStatus.success, sent_at=sent_at
        )
        fail_id = await append_delivery(
            db_conn,
            shift["shift_id"],
            SAME_DAY,
            DeliveryStatus.fail,
            error="invalid_address",
            sent_at=sent_at,
        )

        rows = await get_deliveries_for_date(db_conn, date(2024, 3, 10))
        assert [r["delivery_id"] for r in rows] == [ok_id, fail_id]
        assert rows[0]["status"] == "Success"
        assert rows[0]["error"] is None

        failed = await get_deliveries_for_date(db_conn, date(2024, 3, 10), failed_only=True)
        assert [r["delivery_id"] for r in failed] == [fail_id]
        assert failed[0]["error"] == "invalid_address"

    @pytest.mark.asyncio
    async def test_between_is_half_open(self, db_conn, make_volunteer, make_shift):
        volunteer = await make_volunteer()
        shift = await make_shift(volunteer["volunteer_id"], datetime(2024, 3, 10, 8, 0))
        start = datetime(2024, 3, 10, 0, 0, tzinfo=timezone.utc)
        end = datetime(2024, 3, 11, 0, 0, tzinfo=timezone.utc)

        await append_delivery(
            db_conn, shift["shift_id"], SAME_DAY, DeliveryStatus.success, sent_at=start
        )
        await append_delivery(
            db_conn, shift["shift_id"], SAME_DAY, DeliveryStatus.success, sent_at=end
        )

        rows = await get_deliveries_between(db_conn, start, end)

        assert len(rows) == 1
