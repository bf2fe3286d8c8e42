"""Database setup and session management."""

import logging
from functools import lru_cache
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import settings

logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parent / "alembic.ini"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def enable_sqlite_savepoints(engine) -> None:
    """Let pysqlite honour SAVEPOINT by emitting BEGIN ourselves.

    pysqlite defers BEGIN until the first write, so a SAVEPOINT opened
    after a read would start (and its RELEASE would commit) the outer
    transaction. Every rule execution relies on savepoints.

    Transactions open with BEGIN IMMEDIATE so concurrent sessions queue
    on the write lock (up to the driver's busy timeout) instead of both
    reading the round-up buffer and then failing to upgrade.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@lru_cache
def get_engine():
    """Get or create the database engine (cached)."""
    connect_args = {}
    database_url = settings.DATABASE_URL

    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
    )
    if database_url.startswith("sqlite"):
        enable_sqlite_savepoints(engine)
    return engine


def get_session_local():
    """Get a sessionmaker bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def alembic_config(database_url: str | None = None):
    """Alembic Config for this checkout, optionally pointed at another database."""
    config = Config(str(ALEMBIC_INI))
    config.attributes["configure_logger"] = False
    if database_url:
        config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return config


def init_db() -> None:
    """Upgrade the database schema to the latest migration."""
    command.upgrade(alembic_config(), "head")
    logger.info("Database schema at head")


def get_db():
    """Dependency that provides a database session.

    Transaction conventions:
    - Default: services ``flush()``, API layer ``commit()``
    - Each automation rule execution runs inside its own savepoint so a
      failing rule never rolls back rules already processed in the batch
    - SQLite sessions take the write lock at BEGIN (BEGIN IMMEDIATE), so
      round-ups for the same rule from separate sessions are serialized
    """
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
