"""
Shift reminder engine.

Evaluates scheduler rules every minute and sends SMS reminders to the
volunteers of upcoming shifts, recording each run exactly once.
"""

# Database (SQLAlchemy)
from .database import get_connection, get_engine, close_engine

# Configuration
from .config import ConfigurationError, check_required_env_vars

# Timezone utilities
from .timezone import now_in_timezone, weekday_name

__all__ = [
    # Database (SQLAlchemy)
    'get_connection', 'get_engine', 'close_engine',
    # Configuration
    'ConfigurationError', 'check_required_env_vars',
    # Timezone
    'now_in_timezone', 'weekday_name',
]
