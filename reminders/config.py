"""
Centralized configuration for the reminder engine.

All settings come from environment variables (loaded from .env files by
the entry point). Invalid settings raise ConfigurationError, which is
only ever raised at startup and is meant to stop the process.
"""

import os
from dataclasses import dataclass

from .constants import DEFAULT_TICK_SECONDS, DEFAULT_TIMEZONE, MAX_TICK_SECONDS
from .timezone import is_valid_timezone

DEFAULT_INFORU_BASE_URL = "https://api.inforu.co.il/"
DEFAULT_INFORU_TIMEOUT_SECONDS = 30.0


class ConfigurationError(Exception):
    """Raised when required settings are missing or invalid."""

    pass


@dataclass(frozen=True)
class InforuSettings:
    """Credentials and endpoint for the InforUMobile SMS gateway."""

    username: str
    password: str
    sender_name: str
    base_url: str = DEFAULT_INFORU_BASE_URL
    timeout_seconds: float = DEFAULT_INFORU_TIMEOUT_SECONDS


def _is_truthy(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def is_scheduler_disabled() -> bool:
    """Check if the reminder loop should not be started (--no-scheduler)."""
    return _is_truthy(os.getenv("DISABLE_REMINDER_SCHEDULER", ""))


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "8000"))


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_reminder_timezone() -> str:
    """
    Get the fixed timezone all schedule matching happens in.

    Raises:
        ConfigurationError: If REMINDER_TIMEZONE is not a known timezone
    """
    tz_name = os.getenv("REMINDER_TIMEZONE", DEFAULT_TIMEZONE)
    if not is_valid_timezone(tz_name):
        raise ConfigurationError(f"REMINDER_TIMEZONE is not a known timezone: {tz_name}")
    return tz_name


def get_tick_interval_seconds() -> int:
    """
    Get the scheduler tick interval.

    Raises:
        ConfigurationError: If the value is not an integer in 1..60
    """
    raw = os.getenv("REMINDER_TICK_SECONDS", str(DEFAULT_TICK_SECONDS))
    try:
        seconds = int(raw)
    except ValueError:
        raise ConfigurationError(f"REMINDER_TICK_SECONDS must be an integer, got {raw!r}")
    if not 1 <= seconds <= MAX_TICK_SECONDS:
        raise ConfigurationError(
            f"REMINDER_TICK_SECONDS must be between 1 and {MAX_TICK_SECONDS}, got {seconds}"
        )
    return seconds


def claim_before_dispatch() -> bool:
    """Whether a dispatch reserves its rule/date/kind before sending anything."""
    return _is_truthy(os.getenv("REMINDER_CLAIM_BEFORE_DISPATCH", "true"))


def get_inforu_settings() -> InforuSettings:
    """
    Read SMS gateway settings.

    Raises:
        ConfigurationError: If credentials are missing or the timeout is invalid
    """
    missing = [
        name
        for name in ("INFORU_USERNAME", "INFORU_PASSWORD", "INFORU_SENDER_NAME")
        if not os.environ.get(name)
    ]
    if missing:
        raise ConfigurationError(f"SMS gateway not configured: {', '.join(missing)} not set")

    raw_timeout = os.getenv("INFORU_TIMEOUT_SECONDS", str(DEFAULT_INFORU_TIMEOUT_SECONDS))
    try:
        timeout = float(raw_timeout)
    except ValueError:
        raise ConfigurationError(f"INFORU_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}")

    base_url = os.getenv("INFORU_BASE_URL", DEFAULT_INFORU_BASE_URL)
    if not base_url.endswith("/"):
        base_url += "/"

    return InforuSettings(
        username=os.environ["INFORU_USERNAME"],
        password=os.environ["INFORU_PASSWORD"],
        sender_name=os.environ["INFORU_SENDER_NAME"],
        base_url=base_url,
        timeout_seconds=timeout,
    )


# Required environment variables
# Format: (name, description, required_without_scheduler)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string", True),
    ("INFORU_USERNAME", "InforUMobile account user name", False),
    ("INFORU_PASSWORD", "InforUMobile account password", False),
    ("INFORU_SENDER_NAME", "Sender name shown on outgoing SMS", False),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set and valid.

    Gateway credentials are only warnings when the scheduler is
    disabled, since nothing will be sent.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages
    """
    warnings = []
    errors = []
    relaxed = is_scheduler_disabled()

    for name, description, required_without_scheduler in REQUIRED_ENV_VARS:
        if os.environ.get(name):
            continue
        if required_without_scheduler or not relaxed:
            errors.append(f"  ✗ {name}: Not set ({description})")
        else:
            warnings.append(f"  ⚠ {name}: Not set ({description})")

    for getter in (get_reminder_timezone, get_tick_interval_seconds):
        try:
            getter()
        except ConfigurationError as e:
            errors.append(f"  ✗ {e}")

    if errors:
        for error in errors:
            print(error)
        return False, warnings

    return True, warnings
