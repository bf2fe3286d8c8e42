"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.automation import get_execution_engine
from database import Base, enable_sqlite_savepoints, get_db
from main import app
from services.execution_engine import ExecutionEngine
from services.rule_locks import RuleLockRegistry
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    aapl,
    googl,
    portfolio,
    round_up_rule,
    schedule_rule,
)


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="lock_registry")
def lock_registry_fixture():
    """A lock registry private to one test."""
    return RuleLockRegistry()


@pytest.fixture(name="client")
def client_fixture(db, lock_registry):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_execution_engine():
        return ExecutionEngine(lock_registry=lock_registry)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_execution_engine] = override_get_execution_engine
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
