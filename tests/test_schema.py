"""Tests for the schema bootstrap."""

import pytest

from templatebot.db import Database
from templatebot.db.pool import ConnectionPool
from templatebot.db.schema import CREATE_STATEMENTS, Table, initialize_schema

pytestmark = pytest.mark.asyncio


async def _tables(database):
    rows = await database.pool.fetch("SELECT name FROM sqlite_master WHERE type='table'")
    return {row["name"] for row in rows}


async def test_all_tables_created(database):
    assert {table.value for table in Table} <= await _tables(database)


async def test_initialize_is_idempotent(database):
    await database.guilds.initialize_guild(42)
    await database.guilds.set_guild_prefix(42, "?!")

    await database.initialize()
    await database.initialize()

    guild = await database.guilds.get_guild(42)
    assert guild.prefix == "?!"


async def test_initialize_across_restarts(sqlite_settings):
    first = Database.from_settings(sqlite_settings)
    await first.initialize()
    await first.users.initialize_user(5)
    await first.disconnect()

    second = Database.from_settings(sqlite_settings)
    await second.initialize()
    try:
        assert await second.users.initialize_user(5) is False
    finally:
        await second.disconnect()


async def test_statements_sent_as_one_batch(connector):
    pool = ConnectionPool(connector, max_size=1)

    await initialize_schema(pool)

    conn = connector.created[0]
    assert len(conn.statements) == len(CREATE_STATEMENTS) == 3
    assert all(query.startswith("CREATE TABLE IF NOT EXISTS") for query, _ in conn.statements)
    assert pool.idle_size == 1


async def test_failure_propagates(connector):
    pool = ConnectionPool(connector, max_size=1)
    await pool.dispose_all()

    with pytest.raises(RuntimeError):
        await initialize_schema(pool)
