"""Store drivers: one physical connection behind a uniform async interface.

Statements are always written with PostgreSQL-style positional placeholders
(``$1``, ``$2``, ...). The SQLite driver rewrites them before execution.
Rows come back as plain dicts keyed by lower-cased column name, which is what
PostgreSQL reports for unquoted identifiers anyway.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import aiosqlite
import asyncpg

from ..config import DatabaseSettings

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

_PLACEHOLDER = re.compile(r"\$(\d+)")


class Connection(Protocol):
    """What the pool and the repositories need from a store connection."""

    async def execute(self, query: str, *args: Any) -> int: ...

    async def fetch(self, query: str, *args: Any) -> List[Row]: ...

    async def fetchrow(self, query: str, *args: Any) -> Optional[Row]: ...

    async def execute_batch(self, statements: Sequence[str]) -> None: ...

    def is_valid(self) -> bool: ...

    async def close(self) -> None: ...


ConnectionFactory = Callable[[], Awaitable[Connection]]


def _to_row(record: Mapping[str, Any]) -> Row:
    return {key.lower(): record[key] for key in record.keys()}


def rows_affected(status: str) -> int:
    """Extract the row count from a PostgreSQL command tag such as ``INSERT 0 1``."""
    parts = status.split()
    if parts and parts[-1].isdigit():
        return int(parts[-1])
    return 0


def to_qmark(query: str, args: Sequence[Any]) -> Tuple[str, Tuple[Any, ...]]:
    """Rewrite ``$n`` placeholders to ``?`` and order the arguments to match."""
    order: List[int] = []

    def _replace(match: re.Match) -> str:
        order.append(int(match.group(1)))
        return "?"

    rewritten = _PLACEHOLDER.sub(_replace, query)
    for index in order:
        if index < 1 or index > len(args):
            raise ValueError(f"Placeholder ${index} has no bound argument ({len(args)} given)")
    return rewritten, tuple(args[index - 1] for index in order)


class PostgresConnection:
    """asyncpg connection adapter."""

    def __init__(self, conn: asyncpg.Connection):
        self._conn = conn

    async def execute(self, query: str, *args: Any) -> int:
        status = await self._conn.execute(query, *args)
        return rows_affected(status)

    async def fetch(self, query: str, *args: Any) -> List[Row]:
        records = await self._conn.fetch(query, *args)
        return [_to_row(record) for record in records]

    async def fetchrow(self, query: str, *args: Any) -> Optional[Row]:
        record = await self._conn.fetchrow(query, *args)
        return _to_row(record) if record is not None else None

    async def execute_batch(self, statements: Sequence[str]) -> None:
        # Without arguments asyncpg uses the simple query protocol, which
        # accepts several statements in one round trip.
        await self._conn.execute(";\n".join(statements))

    def is_valid(self) -> bool:
        return not self._conn.is_closed() and not self._conn.is_in_transaction()

    async def close(self) -> None:
        await self._conn.close()


class SQLiteConnection:
    """aiosqlite connection adapter running in autocommit mode."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn
        self._closed = False

    async def execute(self, query: str, *args: Any) -> int:
        sql, params = to_qmark(query, args)
        async with self._conn.execute(sql, params) as cursor:
            return max(cursor.rowcount, 0)

    async def fetch(self, query: str, *args: Any) -> List[Row]:
        sql, params = to_qmark(query, args)
        async with self._conn.execute(sql, params) as cursor:
            rows = await cursor.fetchall()
        return [_to_row(row) for row in rows]

    async def fetchrow(self, query: str, *args: Any) -> Optional[Row]:
        sql, params = to_qmark(query, args)
        async with self._conn.execute(sql, params) as cursor:
            row = await cursor.fetchone()
        return _to_row(row) if row is not None else None

    async def execute_batch(self, statements: Sequence[str]) -> None:
        await self._conn.executescript(";\n".join(statements) + ";")

    def is_valid(self) -> bool:
        return not self._closed

    async def close(self) -> None:
        self._closed = True
        await self._conn.close()


async def connect_postgres(settings: DatabaseSettings) -> PostgresConnection:
    conn = await asyncpg.connect(
        host=settings.host,
        port=settings.port,
        user=settings.username,
        password=settings.password,
        database=settings.name,
        timeout=settings.connect_timeout,
    )
    logger.debug("Opened PostgreSQL connection to %s:%d/%s", settings.host, settings.port, settings.name)
    return PostgresConnection(conn)


async def connect_sqlite(settings: DatabaseSettings) -> SQLiteConnection:
    async def _open() -> aiosqlite.Connection:
        return await aiosqlite.connect(settings.path, isolation_level=None)

    conn = await asyncio.wait_for(_open(), timeout=settings.connect_timeout)
    conn.row_factory = aiosqlite.Row
    logger.debug("Opened SQLite connection to %s", settings.path)
    return SQLiteConnection(conn)


def connection_factory(settings: DatabaseSettings) -> ConnectionFactory:
    """Return a zero-argument coroutine function opening one connection."""
    if settings.backend == "sqlite":
        return lambda: connect_sqlite(settings)
    return lambda: connect_postgres(settings)


def pool_size_for(settings: DatabaseSettings) -> int:
    """Maximum pool size usable with ``settings``.

    Every connection to ``:memory:`` opens its own empty database, so an
    in-memory SQLite store can only be shared through a single connection.
    """
    if settings.backend == "sqlite" and settings.path == ":memory:":
        if settings.pool_size != 1:
            logger.info("In-memory SQLite database, limiting pool to a single connection")
        return 1
    return settings.pool_size
