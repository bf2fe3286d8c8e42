"""Centralized logging configuration."""

import logging

from config import settings

# Per-statement, per-request and per-migration chatter. The round-up webhook
# alone produces one access line per card purchase.
QUIET_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "uvicorn.access",
    "alembic.runtime.migration",
    "httpx",
)


def setup_logging() -> None:
    """Configure logging for the API and the cron ticks.

    Sets root logger level from settings.LOG_LEVEL and quiets
    QUIET_LOGGERS to WARNING. Records carry the thread name because
    webhook workers and the scheduler tick can run rules side by side.
    """
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=getattr(logging, settings.LOG_LEVEL),
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
