"""
Pytest fixtures for reminder engine tests.

Database tests run against a throwaway SQLite file through aiosqlite.
The schema only uses portable column types, so the same tables are
created with metadata.create_all() instead of running migrations.
"""

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import create_async_engine

from reminders.enums import DayGroup, ReminderKind
from reminders.notifications.channels.base import NotificationChannel, SendResult
from reminders.tables import metadata, scheduler_rules, shifts, volunteers


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """
    Provide a fresh database and inject it into reminders.database.

    Functions using get_connection() use this same engine.
    """
    from reminders.database import set_engine

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'reminders.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    set_engine(engine)
    try:
        yield engine
    finally:
        set_engine(None)
        await engine.dispose()


@pytest_asyncio.fixture
async def db_conn(db_engine):
    """Connection to the test database. Writes must be committed by the caller."""
    async with db_engine.connect() as conn:
        yield conn


@pytest.fixture
def make_volunteer(db_engine):
    """Factory inserting a volunteer; returns the stored row."""

    async def _make(
        mapping_name: str = "Test Volunteer",
        first_name: str | None = "Test",
        last_name: str | None = "Volunteer",
        mobile_phone: str | None = "0501234567",
        sms_opt_in: bool = True,
    ) -> dict:
        async with db_engine.begin() as conn:
            result = await conn.execute(
                insert(volunteers)
                .values(
                    mapping_name=mapping_name,
                    first_name=first_name,
                    last_name=last_name,
                    mobile_phone=mobile_phone,
                    sms_opt_in=sms_opt_in,
                )
                .returning(volunteers)
            )
            return dict(result.mappings().first())

    return _make


@pytest.fixture
def make_shift(db_engine):
    """Factory inserting a shift for a volunteer; returns the stored row."""

    async def _make(
        volunteer_id: int,
        shift_date: datetime,
        shift_name: str = "North-1",
        car_id: str = "",
    ) -> dict:
        async with db_engine.begin() as conn:
            result = await conn.execute(
                insert(shifts)
                .values(
                    volunteer_id=volunteer_id,
                    shift_date=shift_date,
                    shift_name=shift_name,
                    car_id=car_id,
                )
                .returning(shifts)
            )
            return dict(result.mappings().first())

    return _make


@pytest.fixture
def make_rule(db_engine):
    """Factory inserting a scheduler rule; returns the stored row."""

    async def _make(
        day_group: str = DayGroup.sun_thu.value,
        reminder_kind: str = ReminderKind.same_day.value,
        time_of_day: str = "07:00",
        days_before_shift: int = 0,
        is_enabled: bool = True,
        message_template: str = "Hi {first-name}, shift {shift-label} on {date}",
    ) -> dict:
        async with db_engine.begin() as conn:
            result = await conn.execute(
                insert(scheduler_rules)
                .values(
                    day_group=day_group,
                    reminder_kind=reminder_kind,
                    time_of_day=time_of_day,
                    days_before_shift=days_before_shift,
                    is_enabled=is_enabled,
                    message_template=message_template,
                )
                .returning(scheduler_rules)
            )
            return dict(result.mappings().first())

    return _make


class FakeChannel(NotificationChannel):
    """
    In-memory channel recording every send.

    `outcomes` maps an address to the SendResult to return, or to an
    exception instance to raise. Unlisted addresses succeed.
    """

    def __init__(self, outcomes: dict | None = None):
        self.outcomes = outcomes or {}
        self.sent: list[tuple[str, str]] = []

    async def send(self, address: str, message: str) -> SendResult:
        self.sent.append((address, message))
        outcome = self.outcomes.get(address, SendResult.ok())
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def fake_channel():
    return FakeChannel()
