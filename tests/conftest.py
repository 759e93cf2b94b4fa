"""Shared pytest fixtures and test utilities for Doc-O-Link tests."""

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from docolink.config import get_settings
from docolink.documents.events import reset_hooks
from docolink.documents.registry import reset_registry
from docolink.storage.database import Database, reset_db
from docolink.validation import reset_validator

# Registers the mock tables on Base.metadata
from mocks import FakeRoot

SCHEMA_DIR = Path(__file__).parent / "schemas"


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch) -> Generator[None, None, None]:
    """
    Point settings at the test schemas and give every test fresh hooks,
    linked attribute registry and validator.
    """
    monkeypatch.setenv("SCHEMA_DIR", str(SCHEMA_DIR))
    monkeypatch.setenv("SCHEMA_BASE_URL", "https://unit.test/")
    get_settings.cache_clear()
    reset_hooks()
    reset_registry()
    reset_validator()

    yield

    reset_hooks()
    reset_registry()
    reset_validator()
    get_settings.cache_clear()


@pytest.fixture(scope="function")
def temp_db() -> Generator[Database, None, None]:
    """
    Create a temporary SQLite database for testing.

    Yields:
        Database instance with tables created
    """
    # Create temporary database file
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Reset global database instance
    reset_db()

    # Create database
    database = Database(f"sqlite:///{db_path}")
    database.create_tables()

    yield database

    # Cleanup
    database.drop_tables()
    database.dispose()
    reset_db()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def db_session(temp_db):
    """Get a database session from temp_db."""
    with temp_db.session() as session:
        yield session


@pytest.fixture
def root() -> FakeRoot:
    """An empty in-memory persistence root."""
    return FakeRoot()
