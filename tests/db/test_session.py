"""Tests for engine options derived from settings."""

from src.config.settings import LogLevel, Settings
from src.db.session import engine_options


class TestEngineOptions:
    def test_postgres_gets_pre_ping(self) -> None:
        settings = Settings(DATABASE_URL="postgresql+asyncpg://u:p@db:5432/taskroom")
        assert engine_options(settings) == {"echo": False, "pool_pre_ping": True}

    def test_sqlite_skips_pre_ping(self) -> None:
        settings = Settings(DATABASE_URL="sqlite+aiosqlite:///./taskroom.db")
        assert engine_options(settings) == {"echo": False}

    def test_debug_level_echoes_sql(self) -> None:
        settings = Settings(
            DATABASE_URL="sqlite+aiosqlite:///:memory:", LOG_LEVEL=LogLevel.DEBUG
        )
        assert engine_options(settings)["echo"] is True
