"""SQLAlchemy Core table definitions for the database schema."""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    false,
    func,
    true,
)

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


# =====================================================
# 1. VOLUNTEERS (recipients, written by the import pipeline)
# =====================================================
volunteers = Table(
    "volunteers",
    metadata,
    Column("volunteer_id", Integer, primary_key=True, autoincrement=True),
    Column("mapping_name", Text, nullable=False),  # display name from the roster
    Column("first_name", Text),
    Column("last_name", Text),
    Column("mobile_phone", Text),
    Column("sms_opt_in", Boolean, nullable=False, server_default=false()),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
)


# =====================================================
# 2. SHIFTS (written by the import pipeline)
# =====================================================
shifts = Table(
    "shifts",
    metadata,
    Column("shift_id", Integer, primary_key=True, autoincrement=True),
    # Local wall-clock time in the reminder timezone, no offset stored
    Column("shift_date", DateTime, nullable=False),
    Column("shift_name", Text, nullable=False),
    Column("car_id", Text, nullable=False, server_default=""),
    Column(
        "volunteer_id",
        Integer,
        ForeignKey("volunteers.volunteer_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
    Index("idx_shifts_shift_date", "shift_date"),
    Index("idx_shifts_volunteer_id", "volunteer_id"),
)


# =====================================================
# 3. SCHEDULER RULES (managed by the admin UI, read-only here)
# =====================================================
scheduler_rules = Table(
    "scheduler_rules",
    metadata,
    Column("rule_id", Integer, primary_key=True, autoincrement=True),
    Column("day_group", Text, nullable=False),  # "SunThu", "Fri", "Sat"
    Column("reminder_kind", Text, nullable=False),  # "SameDay", "Advance"
    Column("time_of_day", Text, nullable=False),  # "HH:MM", exact match
    Column("days_before_shift", Integer, nullable=False, server_default="0"),
    Column("is_enabled", Boolean, nullable=False, server_default=true()),
    Column("message_template", Text, nullable=False, server_default=""),
    Column("updated_at", DateTime(timezone=True)),
    Column("updated_by", Text),
    UniqueConstraint(
        "day_group", "reminder_kind", name="scheduler_rules_group_kind_unique"
    ),
)


# =====================================================
# 4. RUN CLAIMS (reserved before a dispatch sends anything)
# =====================================================
scheduler_run_claims = Table(
    "scheduler_run_claims",
    metadata,
    Column("claim_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "rule_id",
        Integer,
        ForeignKey("scheduler_rules.rule_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("target_date", Date, nullable=False),
    Column("reminder_kind", Text, nullable=False),
    Column("claimed_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint(
        "rule_id",
        "target_date",
        "reminder_kind",
        name="scheduler_run_claims_rule_date_kind_unique",
    ),
)


# =====================================================
# 5. RUN LOG (one row per rule/date/kind, never updated)
# =====================================================
scheduler_run_log = Table(
    "scheduler_run_log",
    metadata,
    Column("run_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "rule_id",
        Integer,
        ForeignKey("scheduler_rules.rule_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("reminder_kind", Text, nullable=False),
    Column("ran_at", DateTime(timezone=True), nullable=False),
    Column("target_date", Date, nullable=False),
    Column("total_eligible", Integer, nullable=False, server_default="0"),
    Column("sent_count", Integer, nullable=False, server_default="0"),
    Column("failed_count", Integer, nullable=False, server_default="0"),
    Column("status", Text, nullable=False),  # "Completed", "Partial", "Failed"
    Column("error_summary", Text),
    UniqueConstraint(
        "rule_id",
        "target_date",
        "reminder_kind",
        name="scheduler_run_log_rule_date_kind_unique",
    ),
    Index("idx_scheduler_run_log_ran_at", "ran_at"),
)


# =====================================================
# 6. DELIVERY LOG (append-only, one row per send attempt)
# =====================================================
delivery_log = Table(
    "delivery_log",
    metadata,
    Column("delivery_id", Integer, primary_key=True, autoincrement=True),
    Column(
        "shift_id",
        Integer,
        ForeignKey("shifts.shift_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("reminder_kind", Text, nullable=False),
    Column("sent_at", DateTime(timezone=True), nullable=False),
    Column("status", Text, nullable=False),  # "Success", "Fail"
    Column("error", Text),
    Index("idx_delivery_log_sent_at", "sent_at"),
    # Anti-join lookup used by the eligibility query
    Index("idx_delivery_log_dedup", "shift_id", "reminder_kind", "status"),
)
