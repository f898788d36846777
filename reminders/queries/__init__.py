"""Query layer for database operations using SQLAlchemy Core."""

from .delivery_log import append_delivery, get_deliveries_between, get_deliveries_for_date
from .eligibility import eligibility_window, select_eligible
from .rules import get_rule, list_enabled_rules
from .run_log import (
    get_recent_runs,
    release_claim,
    run_exists,
    try_claim_run,
    try_insert_run,
)

__all__ = [
    # Rules
    "list_enabled_rules",
    "get_rule",
    # Run ledger
    "run_exists",
    "try_insert_run",
    "try_claim_run",
    "release_claim",
    "get_recent_runs",
    # Delivery log
    "append_delivery",
    "get_deliveries_between",
    "get_deliveries_for_date",
    # Eligibility
    "eligibility_window",
    "select_eligible",
]
