"""Lifecycle facade: one pool, the repositories on top of it, start and stop."""

from __future__ import annotations

import logging

from ..config import DatabaseSettings
from .drivers import connection_factory, pool_size_for
from .pool import ConnectionPool
from .repositories import GuildRepository, PermissionRepository, UserRepository
from .schema import initialize_schema

logger = logging.getLogger(__name__)


class Database:
    """
    Data access for the bot.

    Usage:
        database = Database.from_settings(get_settings().db)
        await database.initialize()
        if await database.guilds.initialize_guild(guild_id):
            ...
        await database.disconnect()
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool
        self.guilds = GuildRepository(pool)
        self.users = UserRepository(pool)
        self.permissions = PermissionRepository(pool)

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "Database":
        pool = ConnectionPool(
            connection_factory(settings),
            max_size=pool_size_for(settings),
            acquire_timeout=settings.acquire_timeout,
        )
        logger.info("Database pool created (backend: %s, max size: %d)", settings.backend, pool.max_size)
        return cls(pool)

    async def initialize(self) -> None:
        """Create missing tables. Errors are fatal to startup and propagate."""
        await initialize_schema(self.pool)

    async def disconnect(self) -> None:
        """Close all pooled connections. No query can run afterwards."""
        await self.pool.dispose_all()
