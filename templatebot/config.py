import logging
import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Connection parameters for the relational store."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="DATABASE_", extra="ignore"
    )

    backend: Literal["postgres", "sqlite"] = Field("postgres", description="Store driver to use")
    host: str = Field("localhost", description="PostgreSQL server host")
    port: int = Field(5432, description="PostgreSQL server port")
    username: str = Field("postgres", description="PostgreSQL user")
    password: Optional[str] = Field(None, description="PostgreSQL password")
    name: str = Field("templatebot", description="PostgreSQL database name")
    path: str = Field("templatebot.db", description="Path to the SQLite database file")
    pool_size: int = Field(10, gt=0, description="Maximum number of open connections")
    connect_timeout: float = Field(3.0, gt=0, description="Seconds to wait for a new connection")
    acquire_timeout: Optional[float] = Field(
        None, gt=0, description="Seconds to wait for a free pool slot, unbounded if unset"
    )


class AppSettings(BaseSettings):
    """General application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    debug: bool = Field(False, description="Enable debug mode for development")
    log_level: str = Field("INFO", description="Logging level")

    db: DatabaseSettings = Field(default_factory=DatabaseSettings)

    @property
    def log_level_value(self) -> int:
        """Return the numeric value of the log level."""
        return logging.getLevelName(self.log_level.upper())


@lru_cache
def get_settings() -> AppSettings:
    """
    Get application settings.
    If the TEST_MODE environment variable is set, it returns a configuration
    backed by an in-memory SQLite database, otherwise loads the configuration
    from the environment and the .env file.
    """
    if os.getenv("TEST_MODE"):
        return AppSettings(
            debug=True,
            log_level="DEBUG",
            db=DatabaseSettings(backend="sqlite", path=":memory:"),
        )
    return AppSettings()
