"""Root pytest configuration."""

from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load environment variables before tests run
_root = Path(__file__).parent
load_dotenv(_root / ".env")
load_dotenv(_root / ".env.local", override=True)


@pytest.fixture(autouse=True)
def reminder_env(monkeypatch):
    """Pin settings that would otherwise leak in from a developer's .env."""
    monkeypatch.setenv("REMINDER_TIMEZONE", "Asia/Jerusalem")
    monkeypatch.setenv("REMINDER_TICK_SECONDS", "60")
    monkeypatch.setenv("REMINDER_CLAIM_BEFORE_DISPATCH", "true")
    monkeypatch.delenv("DISABLE_REMINDER_SCHEDULER", raising=False)


@pytest.fixture(scope="session")
def event_loop_policy():
    """Use default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()
