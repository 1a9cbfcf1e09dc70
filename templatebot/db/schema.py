"""Table names and the schema bootstrap."""

from __future__ import annotations

import enum
import logging
from typing import List

from .pool import ConnectionPool

logger = logging.getLogger(__name__)


class Table(str, enum.Enum):
    """Every table this layer touches. Queries only ever interpolate these names."""

    GUILDS = "guilds"
    USERS = "users"
    PERMISSIONS = "permissions"


CREATE_STATEMENTS: List[str] = [
    f"""
    CREATE TABLE IF NOT EXISTS {Table.GUILDS.value} (
        guildId BIGINT,
        prefix VARCHAR(10),
        language VARCHAR(5),
        PRIMARY KEY (guildId)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {Table.USERS.value} (
        userId BIGINT,
        prefix VARCHAR(10),
        language VARCHAR(5),
        PRIMARY KEY (userId)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {Table.PERMISSIONS.value} (
        permissionName TEXT,
        guildId BIGINT,
        targetId BIGINT,
        isUser BOOLEAN,
        isWhitelist BOOLEAN,
        PRIMARY KEY (permissionName, guildId, targetId, isUser)
    )
    """,
]


async def initialize_schema(pool: ConnectionPool) -> None:
    """Create all missing tables in one batch. Existing tables are left untouched."""
    try:
        async with pool.connection() as conn:
            await conn.execute_batch([statement.strip() for statement in CREATE_STATEMENTS])
        logger.info("Database schema ready (%s)", ", ".join(table.value for table in Table))
    except Exception as e:
        logger.exception("Failed to initialize database schema: %s", e)
        raise
