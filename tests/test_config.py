import logging

import pytest
from pydantic import ValidationError

from templatebot.config import AppSettings, DatabaseSettings, get_settings


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


def test_database_settings_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_BACKEND", "postgres")
    monkeypatch.setenv("DATABASE_HOST", "db.example")
    monkeypatch.setenv("DATABASE_PORT", "5433")
    monkeypatch.setenv("DATABASE_USERNAME", "bot")
    monkeypatch.setenv("DATABASE_PASSWORD", "hunter2")
    monkeypatch.setenv("DATABASE_NAME", "bot_settings")
    monkeypatch.setenv("DATABASE_POOL_SIZE", "4")

    settings = DatabaseSettings()

    assert settings.backend == "postgres"
    assert (settings.host, settings.port) == ("db.example", 5433)
    assert (settings.username, settings.password, settings.name) == ("bot", "hunter2", "bot_settings")
    assert settings.pool_size == 4
    assert settings.connect_timeout == 3.0
    assert settings.acquire_timeout is None


def test_pool_size_must_be_positive(monkeypatch):
    monkeypatch.setenv("DATABASE_POOL_SIZE", "0")

    with pytest.raises(ValidationError):
        DatabaseSettings()


def test_unknown_backend_rejected():
    with pytest.raises(ValidationError):
        DatabaseSettings(backend="mysql")


def test_test_mode_uses_memory_sqlite(monkeypatch, fresh_settings):
    monkeypatch.setenv("TEST_MODE", "1")

    settings = fresh_settings()

    assert settings.debug is True
    assert settings.db.backend == "sqlite"
    assert settings.db.path == ":memory:"
    assert settings.log_level_value == logging.DEBUG


def test_settings_are_read_once(monkeypatch, fresh_settings):
    monkeypatch.delenv("TEST_MODE", raising=False)

    assert fresh_settings() is fresh_settings()


def test_log_level_value():
    assert AppSettings(log_level="warning").log_level_value == logging.WARNING
