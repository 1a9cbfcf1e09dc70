from abc import abstractmethod
from typing import Annotated, Any, ClassVar, Mapping

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# Column widths of the prefix and language columns.
Prefix = Annotated[str, Field(max_length=10)]
Language = Annotated[str, Field(max_length=5)]

SETTING_COLUMNS: Mapping[str, TypeAdapter] = {
    "prefix": TypeAdapter(Prefix),
    "language": TypeAdapter(Language),
}


class Record(BaseModel):
    """Immutable snapshot of one stored row."""

    model_config = ConfigDict(frozen=True)

    @classmethod
    @abstractmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Record":
        """Build the record from a result row keyed by lower-cased column name."""


class GuildSettings(Record):
    """Per-guild configuration."""

    DEFAULT_PREFIX: ClassVar[str] = "!"
    DEFAULT_LANGUAGE: ClassVar[str] = "en"

    guild_id: int
    prefix: Prefix = DEFAULT_PREFIX
    language: Language = DEFAULT_LANGUAGE

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "GuildSettings":
        return cls(guild_id=row["guildid"], prefix=row["prefix"], language=row["language"])


class UserSettings(Record):
    """Per-user configuration, overriding the guild's where set."""

    DEFAULT_PREFIX: ClassVar[str] = "!"
    DEFAULT_LANGUAGE: ClassVar[str] = "en"

    user_id: int
    prefix: Prefix = DEFAULT_PREFIX
    language: Language = DEFAULT_LANGUAGE

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UserSettings":
        return cls(user_id=row["userid"], prefix=row["prefix"], language=row["language"])


class PermissionEntry(Record):
    """Allows or denies a permission to one user or role inside a guild."""

    permission_name: str
    guild_id: int
    target_id: int
    is_user: bool  # False: target_id is a role
    is_whitelist: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PermissionEntry":
        return cls(
            permission_name=row["permissionname"],
            guild_id=row["guildid"],
            target_id=row["targetid"],
            is_user=row["isuser"],
            is_whitelist=row["iswhitelist"],
        )
