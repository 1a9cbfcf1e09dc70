"""Repositories for guild settings, user settings and permission entries.

Every operation is a single parameterized statement. Table names are taken
from :class:`~templatebot.db.schema.Table` only, never from arguments.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Type

from .models import SETTING_COLUMNS, GuildSettings, PermissionEntry, UserSettings
from .pool import ConnectionPool
from .schema import Table

logger = logging.getLogger(__name__)


class _SettingsRepository:
    """Shared statements for the two prefix/language tables."""

    table: Table
    key_column: str
    record: Type[GuildSettings] | Type[UserSettings]

    def __init__(self, pool: ConnectionPool):
        self._pool = pool

    async def _initialize(self, key: int) -> bool:
        async with self._pool.connection() as conn:
            inserted = await conn.execute(
                f"INSERT INTO {self.table.value} ({self.key_column}, prefix, language) "
                "VALUES ($1, $2, $3) ON CONFLICT DO NOTHING",
                key,
                self.record.DEFAULT_PREFIX,
                self.record.DEFAULT_LANGUAGE,
            )
        return inserted > 0

    async def _get(self, key: int):
        row = await self._pool.fetchrow(
            f"SELECT * FROM {self.table.value} WHERE {self.key_column}=$1 LIMIT 1",
            key,
        )
        if row:
            return self.record.from_row(row)
        return None

    async def _set_column(self, key: int, column: str, value: str) -> None:
        # SQLite does not enforce VARCHAR widths.
        value = SETTING_COLUMNS[column].validate_python(value)
        async with self._pool.connection() as conn:
            await conn.execute(
                f"UPDATE {self.table.value} SET {column}=$1 WHERE {self.key_column}=$2",
                value,
                key,
            )


class GuildRepository(_SettingsRepository):
    """Stored settings of the guilds the bot is in."""

    table = Table.GUILDS
    key_column = "guildId"
    record = GuildSettings

    async def initialize_guild(self, guild_id: int) -> bool:
        """
        Store the default settings for a guild unless it is already stored.

        Returns True if a row was inserted, False if the guild already existed.
        """
        try:
            return await self._initialize(guild_id)
        except Exception as e:
            logger.exception("Failed to initialize guild %d: %s", guild_id, e)
            raise

    async def get_guild(self, guild_id: int) -> Optional[GuildSettings]:
        """Retrieve a guild's settings, None if it was never initialized."""
        try:
            return await self._get(guild_id)
        except Exception as e:
            logger.exception("Failed to get guild %d: %s", guild_id, e)
            raise

    async def set_guild_prefix(self, guild_id: int, prefix: str) -> None:
        try:
            await self._set_column(guild_id, "prefix", prefix)
        except Exception as e:
            logger.exception("Failed to update prefix for guild %d: %s", guild_id, e)
            raise

    async def set_guild_language(self, guild_id: int, language: str) -> None:
        try:
            await self._set_column(guild_id, "language", language)
        except Exception as e:
            logger.exception("Failed to update language for guild %d: %s", guild_id, e)
            raise


class UserRepository(_SettingsRepository):
    """Stored settings of individual users."""

    table = Table.USERS
    key_column = "userId"
    record = UserSettings

    async def initialize_user(self, user_id: int) -> bool:
        """
        Store the default settings for a user unless they are already stored.

        Returns True if a row was inserted, False if the user already existed.
        """
        try:
            return await self._initialize(user_id)
        except Exception as e:
            logger.exception("Failed to initialize user %d: %s", user_id, e)
            raise

    async def get_user(self, user_id: int) -> Optional[UserSettings]:
        """Retrieve a user's settings, None if they were never initialized."""
        try:
            return await self._get(user_id)
        except Exception as e:
            logger.exception("Failed to get user %d: %s", user_id, e)
            raise

    async def set_user_prefix(self, user_id: int, prefix: str) -> None:
        try:
            await self._set_column(user_id, "prefix", prefix)
        except Exception as e:
            logger.exception("Failed to update prefix for user %d: %s", user_id, e)
            raise

    async def set_user_language(self, user_id: int, language: str) -> None:
        try:
            await self._set_column(user_id, "language", language)
        except Exception as e:
            logger.exception("Failed to update language for user %d: %s", user_id, e)
            raise


class PermissionRepository:
    """Black- and whitelist entries for users and roles, per permission and guild."""

    def __init__(self, pool: ConnectionPool):
        self._pool = pool

    async def get_permissions(self, permission_name: str, guild_id: int) -> List[PermissionEntry]:
        """
        All entries for ``permission_name`` inside a guild.

        The order of the entries is whatever the store returns.
        """
        try:
            rows = await self._pool.fetch(
                f"SELECT * FROM {Table.PERMISSIONS.value} WHERE permissionName=$1 AND guildId=$2",
                permission_name,
                guild_id,
            )
            return [PermissionEntry.from_row(row) for row in rows]
        except Exception as e:
            logger.exception(
                "Failed to get permissions %s for guild %d: %s", permission_name, guild_id, e
            )
            raise

    async def set_permission(self, entry: PermissionEntry) -> None:
        """Store an entry, replacing the black/whitelist flag of an existing one."""
        try:
            async with self._pool.connection() as conn:
                await conn.execute(
                    f"INSERT INTO {Table.PERMISSIONS.value} "
                    "(permissionName, guildId, targetId, isUser, isWhitelist) "
                    "VALUES ($1, $2, $3, $4, $5) "
                    "ON CONFLICT (permissionName, guildId, targetId, isUser) "
                    "DO UPDATE SET isWhitelist = excluded.isWhitelist",
                    entry.permission_name,
                    entry.guild_id,
                    entry.target_id,
                    entry.is_user,
                    entry.is_whitelist,
                )
        except Exception as e:
            logger.exception(
                "Failed to set permission %s for target %d in guild %d: %s",
                entry.permission_name,
                entry.target_id,
                entry.guild_id,
                e,
            )
            raise

    async def remove_permission(
        self, permission_name: str, guild_id: int, target_id: int, is_user: bool
    ) -> bool:
        """Delete one entry. Returns True if it existed."""
        try:
            async with self._pool.connection() as conn:
                deleted = await conn.execute(
                    f"DELETE FROM {Table.PERMISSIONS.value} "
                    "WHERE permissionName=$1 AND guildId=$2 AND targetId=$3 AND isUser=$4",
                    permission_name,
                    guild_id,
                    target_id,
                    is_user,
                )
            return deleted > 0
        except Exception as e:
            logger.exception(
                "Failed to remove permission %s for target %d in guild %d: %s",
                permission_name,
                target_id,
                guild_id,
                e,
            )
            raise
