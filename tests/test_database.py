"""Unit tests for the async database plumbing."""

import pytest
from sqlalchemy import inspect

from localbiz.models import Database, normalize_database_url


class TestNormalizeDatabaseUrl:
    """Tests for normalize_database_url."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgresql://u:p@db/biz", "postgresql+asyncpg://u:p@db/biz"),
            ("sqlite:///./data/biz.db", "sqlite+aiosqlite:///./data/biz.db"),
            ("sqlite+aiosqlite:///biz.db", "sqlite+aiosqlite:///biz.db"),
            ("postgresql+asyncpg://db/biz", "postgresql+asyncpg://db/biz"),
        ],
    )
    def test_async_drivers(self, url, expected):
        assert normalize_database_url(url) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("url", ["", "mysql://db/biz"])
    def test_rejects_unsupported(self, url):
        with pytest.raises(ValueError):
            normalize_database_url(url)


class TestDatabase:
    """Tests for Database lifecycle against a SQLite file."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_creates_directory_and_tables(self, tmp_path):
        """Test that the SQLite parent directory and schema are created."""
        path = tmp_path / "nested" / "biz.db"
        database = Database.from_url(f"sqlite:///{path}")
        try:
            await database.create_tables()
            async with database.engine.connect() as conn:
                tables = await conn.run_sync(lambda sync: inspect(sync).get_table_names())
            assert {"businesses", "generated_websites", "outreach_log"} <= set(tables)
            assert path.parent.is_dir()

            await database.drop_tables()
            async with database.engine.connect() as conn:
                tables = await conn.run_sync(lambda sync: inspect(sync).get_table_names())
            assert tables == []
        finally:
            await database.close()
