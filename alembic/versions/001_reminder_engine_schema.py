"""Reminder engine schema.

Revision ID: 001
Revises:
Create Date: 2025-01-12

Creates volunteers/shifts (populated by the roster import), scheduler
rules, run claims, the run log and the delivery log. The run log and
claims tables carry the (rule_id, target_date, reminder_kind) unique
constraints that make dispatch idempotent across instances.

Seeds one disabled rule per day group and reminder kind with the
default templates from messages.yaml.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from reminders.enums import DayGroup, ReminderKind
from reminders.notifications.templates import load_default_templates

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# (reminder kind, time of day, days before shift) for seeded rules
DEFAULT_RULE_TIMES = [
    (ReminderKind.same_day, "07:00", 0),
    (ReminderKind.advance, "18:00", 1),
]


def upgrade() -> None:
    op.create_table(
        "volunteers",
        sa.Column("volunteer_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("mapping_name", sa.Text(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("mobile_phone", sa.Text(), nullable=True),
        sa.Column("sms_opt_in", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("volunteer_id", name=op.f("pk_volunteers")),
    )

    op.create_table(
        "shifts",
        sa.Column("shift_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("shift_date", sa.DateTime(), nullable=False),
        sa.Column("shift_name", sa.Text(), nullable=False),
        sa.Column("car_id", sa.Text(), server_default="", nullable=False),
        sa.Column("volunteer_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(
            ["volunteer_id"],
            ["volunteers.volunteer_id"],
            name=op.f("fk_shifts_volunteer_id_volunteers"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("shift_id", name=op.f("pk_shifts")),
    )
    op.create_index("idx_shifts_shift_date", "shifts", ["shift_date"])
    op.create_index("idx_shifts_volunteer_id", "shifts", ["volunteer_id"])

    scheduler_rules = op.create_table(
        "scheduler_rules",
        sa.Column("rule_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("day_group", sa.Text(), nullable=False),
        sa.Column("reminder_kind", sa.Text(), nullable=False),
        sa.Column("time_of_day", sa.Text(), nullable=False),
        sa.Column("days_before_shift", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("message_template", sa.Text(), server_default="", nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_by", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("rule_id", name=op.f("pk_scheduler_rules")),
        sa.UniqueConstraint(
            "day_group", "reminder_kind", name="scheduler_rules_group_kind_unique"
        ),
    )

    op.create_table(
        "scheduler_run_claims",
        sa.Column("claim_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("rule_id", sa.Integer(), nullable=False),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column("reminder_kind", sa.Text(), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(
            ["rule_id"],
            ["scheduler_rules.rule_id"],
            name=op.f("fk_scheduler_run_claims_rule_id_scheduler_rules"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("claim_id", name=op.f("pk_scheduler_run_claims")),
        sa.UniqueConstraint(
            "rule_id",
            "target_date",
            "reminder_kind",
            name="scheduler_run_claims_rule_date_kind_unique",
        ),
    )

    op.create_table(
        "scheduler_run_log",
        sa.Column("run_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("rule_id", sa.Integer(), nullable=False),
        sa.Column("reminder_kind", sa.Text(), nullable=False),
        sa.Column("ran_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column("total_eligible", sa.Integer(), server_default="0", nullable=False),
        sa.Column("sent_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("failed_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("error_summary", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["rule_id"],
            ["scheduler_rules.rule_id"],
            name=op.f("fk_scheduler_run_log_rule_id_scheduler_rules"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("run_id", name=op.f("pk_scheduler_run_log")),
        sa.UniqueConstraint(
            "rule_id",
            "target_date",
            "reminder_kind",
            name="scheduler_run_log_rule_date_kind_unique",
        ),
    )
    op.create_index("idx_scheduler_run_log_ran_at", "scheduler_run_log", ["ran_at"])

    op.create_table(
        "delivery_log",
        sa.Column("delivery_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("shift_id", sa.Integer(), nullable=False),
        sa.Column("reminder_kind", sa.Text(), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["shift_id"],
            ["shifts.shift_id"],
            name=op.f("fk_delivery_log_shift_id_shifts"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("delivery_id", name=op.f("pk_delivery_log")),
    )
    op.create_index("idx_delivery_log_sent_at", "delivery_log", ["sent_at"])
    op.create_index(
        "idx_delivery_log_dedup", "delivery_log", ["shift_id", "reminder_kind", "status"]
    )

    templates = load_default_templates()
    op.bulk_insert(
        scheduler_rules,
        [
            {
                "day_group": day_group.value,
                "reminder_kind": kind.value,
                "time_of_day": time_of_day,
                "days_before_shift": days_before,
                "is_enabled": False,
                "message_template": templates[kind.value],
            }
            for day_group in DayGroup
            for kind, time_of_day, days_before in DEFAULT_RULE_TIMES
        ],
    )


def downgrade() -> None:
    op.drop_index("idx_delivery_log_dedup", table_name="delivery_log")
    op.drop_index("idx_delivery_log_sent_at", table_name="delivery_log")
    op.drop_table("delivery_log")
    op.drop_index("idx_scheduler_run_log_ran_at", table_name="scheduler_run_log")
    op.drop_table("scheduler_run_log")
    op.drop_table("scheduler_run_claims")
    op.drop_table("scheduler_rules")
    op.drop_index("idx_shifts_volunteer_id", table_name="shifts")
    op.drop_index("idx_shifts_shift_date", table_name="shifts")
    op.drop_table("shifts")
    op.drop_table("volunteers")
