"""
This file contains shared fixtures for the test suite.
"""

import logging
import os
import tempfile
import uuid

import pytest
import pytest_asyncio

# Set env vars before any application modules are imported
os.environ.setdefault("DATABASE_BACKEND", "sqlite")
os.environ.setdefault("DATABASE_PATH", ":memory:")

from templatebot.config import DatabaseSettings
from templatebot.db import Database

logger = logging.getLogger(__name__)


class FakeConnection:
    """In-process stand-in for a driver connection, for pool tests."""

    def __init__(self, name: str = "conn"):
        self.name = name
        self.valid = True
        self.closed = False
        self.statements = []

    async def execute(self, query, *args):
        self.statements.append((query, args))
        return 1

    async def fetch(self, query, *args):
        self.statements.append((query, args))
        return []

    async def fetchrow(self, query, *args):
        self.statements.append((query, args))
        return None

    async def execute_batch(self, statements):
        self.statements.extend((statement, ()) for statement in statements)

    def is_valid(self):
        return self.valid and not self.closed

    async def close(self):
        self.closed = True

    def __repr__(self):
        return f"FakeConnection({self.name!r})"


class FakeConnector:
    """Connection factory handing out FakeConnections and counting calls."""

    def __init__(self, failures=None):
        self.created = []
        self._failures = list(failures or [])

    async def __call__(self):
        if self._failures:
            raise self._failures.pop(0)
        conn = FakeConnection(f"conn-{len(self.created) + 1}")
        self.created.append(conn)
        return conn


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def make_connector():
    return FakeConnector


@pytest.fixture
def temp_db_path():
    """Path of a fresh temporary SQLite database file, removed afterwards."""
    unique_id = str(uuid.uuid4())[:8]
    with tempfile.NamedTemporaryFile(suffix=".db", prefix=f"templatebot_test_{unique_id}_", delete=False) as tmp:
        db_path = tmp.name
    logger.info("Creating temporary database: %s", db_path)
    try:
        yield db_path
    finally:
        try:
            os.unlink(db_path)
        except OSError as e:
            logger.error("Error removing temporary database file: %s", e)


@pytest.fixture
def sqlite_settings(temp_db_path):
    return DatabaseSettings(backend="sqlite", path=temp_db_path, pool_size=5)


@pytest_asyncio.fixture
async def database(sqlite_settings):
    """Initialized database on a temporary SQLite file."""
    db = Database.from_settings(sqlite_settings)
    await db.initialize()
    try:
        yield db
    finally:
        await db.disconnect()
