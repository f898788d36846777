"""
Reminder engine entry point.

Architecture:
- One Python process, one asyncio event loop
- APScheduler runs the reminder tick job on the same loop as a small FastAPI
  app that only exposes health/status

We use FastAPI's lifespan to manage startup/shutdown. The lifespan
pattern gives us uvicorn's signal handling for free: SIGTERM stops the
reminder tick at its next rule/recipient boundary.

Run with: python main.py [--no-scheduler] [--port PORT]
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

project_root = Path(__file__).parent

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")  # Local overrides (gitignored)
load_dotenv()  # Fallback to .env

import sentry_sdk
from fastapi import FastAPI

from reminders.config import (
    ConfigurationError,
    check_required_env_vars,
    get_api_port,
    get_log_level,
    is_scheduler_disabled,
)
from reminders.database import close_engine
from reminders.notifications.scheduler import (
    get_ticker,
    init_scheduler,
    shutdown_scheduler,
)

logging.basicConfig(
    level=get_log_level(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

if os.environ.get("SENTRY_DSN"):
    sentry_sdk.init(
        dsn=os.environ["SENTRY_DSN"],
        environment=os.environ.get("SENTRY_ENVIRONMENT", "production"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Validates configuration, then starts the APScheduler reminder job as a
    background task running alongside FastAPI in the same event loop.
    """
    ok, warnings = check_required_env_vars()
    for warning in warnings:
        print(warning)
    if not ok:
        raise ConfigurationError("Missing or invalid configuration, see errors above")

    if is_scheduler_disabled():
        print("Reminder scheduler disabled (--no-scheduler or DISABLE_REMINDER_SCHEDULER=true)")
    else:
        init_scheduler()

    yield  # FastAPI runs here, the scheduler runs alongside it

    print("Shutting down reminder scheduler...")
    await shutdown_scheduler()
    await close_engine()  # Close database connections


app = FastAPI(
    title="Shift Reminder Engine",
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    """Health check with scheduler status."""
    ticker = get_ticker()
    last_tick = ticker.last_tick_at if ticker else None
    return {
        "status": "healthy",
        "scheduler_running": ticker is not None and not ticker.is_stopping,
        "last_tick_at": last_tick.isoformat() if last_tick else None,
    }


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Shift Reminder Engine")
    parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Do not start the reminder loop (health endpoint only)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=get_api_port(),
        help="Port to run the server on (default: 8000)",
    )
    args = parser.parse_args()

    # Set env var so it persists across uvicorn reloads
    if args.no_scheduler:
        os.environ["DISABLE_REMINDER_SCHEDULER"] = "true"

    # Configuration errors are fatal, fail before binding the port
    ok, _ = check_required_env_vars()
    if not ok:
        sys.exit(1)

    # Pass app object directly (not string) to avoid module reimport issues
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )
