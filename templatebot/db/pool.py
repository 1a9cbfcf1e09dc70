"""Bounded asyncio connection pool.

Connections are opened lazily, up to ``max_size``. Callers beyond that wait on
a semaphore instead of opening more connections or failing. Every borrow goes
through :meth:`ConnectionPool.connection`, which checks the connection locally
on the way out and either puts it back or throws it away.

Usage:
    async with pool.connection() as conn:
        await conn.execute("UPDATE guilds SET prefix=$1 WHERE guildId=$2", "?", 42)
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Deque, List, Optional, Set, TypeVar

from .drivers import Connection, ConnectionFactory, Row

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PoolError(RuntimeError):
    """Base class for connection pool failures."""


class ConnectionFailedError(PoolError):
    """A new physical connection could not be established."""


class PoolClosedError(PoolError):
    """The pool has been disposed."""


class PoolTimeoutError(PoolError):
    """No connection became available within the acquire timeout."""


class ConnectionPool:
    """Process-wide pool of store connections.

    Example:
        pool = ConnectionPool(connection_factory(settings.db), max_size=10)

        rows = await pool.fetch("SELECT * FROM permissions WHERE guildId=$1", 42)

        await pool.dispose_all()
    """

    def __init__(
        self,
        connect: ConnectionFactory,
        max_size: int = 10,
        acquire_timeout: Optional[float] = None,
    ):
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._connect = connect
        self._max_size = max_size
        self._acquire_timeout = acquire_timeout
        self._slots = asyncio.Semaphore(max_size)
        self._idle: Deque[Connection] = deque()
        self._open: Set[Connection] = set()
        self._closed = False

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def size(self) -> int:
        """Number of open physical connections, idle or borrowed."""
        return len(self._open)

    @property
    def idle_size(self) -> int:
        return len(self._idle)

    @property
    def closed(self) -> bool:
        return self._closed

    async def acquire(self) -> Connection:
        """Borrow a connection, opening one if there is spare capacity.

        Suspends while ``max_size`` connections are borrowed.
        """
        if self._closed:
            raise PoolClosedError("Connection pool is closed")
        try:
            await asyncio.wait_for(self._slots.acquire(), timeout=self._acquire_timeout)
        except asyncio.TimeoutError:
            logger.error("Timed out waiting for a database connection")
            raise PoolTimeoutError("Database connection timeout") from None

        # A slot is held from here on. Every exit but a returned connection frees it.
        try:
            return await self._take_connection()
        except BaseException:
            self._slots.release()
            raise

    async def _take_connection(self) -> Connection:
        if self._closed:
            raise PoolClosedError("Connection pool is closed")

        while self._idle:
            conn = self._idle.pop()
            if conn.is_valid():
                logger.debug("Reusing pooled connection")
                return conn
            logger.debug("Dropping stale idle connection")
            self._open.discard(conn)
            await self._close_quietly(conn)

        try:
            conn = await self._connect()
        except Exception as e:
            logger.error("Failed to open database connection: %s", e)
            raise ConnectionFailedError(f"Could not connect to the database: {e}") from e

        self._open.add(conn)
        logger.debug("Opened connection %d/%d", len(self._open), self._max_size)
        return conn

    async def release(self, conn: Connection) -> None:
        """Return a healthy connection to the idle set."""
        if self._closed:
            self._open.discard(conn)
            self._slots.release()
            await self._close_quietly(conn)
        else:
            self._idle.append(conn)
            self._slots.release()

    async def discard(self, conn: Connection) -> None:
        """Drop a connection for good, freeing its slot for a new one."""
        self._open.discard(conn)
        self._slots.release()
        logger.debug("Discarding database connection")
        await self._close_quietly(conn)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Connection]:
        """
        Borrow a connection for one unit of work.

        The connection is validated locally after the work finishes, whether it
        succeeded or raised: a healthy one goes back to the pool, anything else
        is discarded.
        """
        conn = await self.acquire()
        start_time = time.monotonic()
        try:
            yield conn
        finally:
            elapsed = time.monotonic() - start_time
            logger.debug("Database connection held for %.3f seconds", elapsed)
            if conn.is_valid():
                await self.release(conn)
            else:
                await self.discard(conn)

    async def use_connection(self, work: Callable[[Connection], Awaitable[T]]) -> T:
        """Run ``work`` with a borrowed connection and return its result."""
        async with self.connection() as conn:
            return await work(conn)

    async def execute(self, query: str, *args: Any) -> int:
        async with self.connection() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> List[Row]:
        async with self.connection() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> Optional[Row]:
        async with self.connection() as conn:
            return await conn.fetchrow(query, *args)

    async def dispose_all(self) -> None:
        """Close every idle connection and refuse further acquires.

        Borrowed connections are closed as they are returned.
        """
        if self._closed:
            return
        self._closed = True
        closed = 0
        while self._idle:
            conn = self._idle.pop()
            self._open.discard(conn)
            await self._close_quietly(conn)
            closed += 1
        logger.info(
            "Database connection pool closed (%d closed, %d still borrowed)", closed, len(self._open)
        )

    @staticmethod
    async def _close_quietly(conn: Connection) -> None:
        try:
            await conn.close()
        except Exception as exc:  # pragma: no cover - cleanup best effort
            logger.warning("Error closing DB connection: %s", exc)
