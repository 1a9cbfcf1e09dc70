"""Database access layer (DAL) for templatebot.

This sub-package encapsulates low-level DB interactions so that the command
and permission logic stays storage-agnostic.
"""

from .database import Database
from .models import GuildSettings, PermissionEntry, UserSettings
from .pool import (
    ConnectionFailedError,
    ConnectionPool,
    PoolClosedError,
    PoolError,
    PoolTimeoutError,
)

__all__ = [
    "ConnectionFailedError",
    "ConnectionPool",
    "Database",
    "GuildSettings",
    "PermissionEntry",
    "PoolClosedError",
    "PoolError",
    "PoolTimeoutError",
    "UserSettings",
]
