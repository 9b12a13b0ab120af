"""Tests for the schema migrator."""

import aiosqlite
import pytest

from src.infrastructure.storage.sqlite.migrations import (
    MigrationInfo,
    discover_migrations,
    run_migrations,
)


class TestDiscovery:
    def test_bundled_migrations(self):
        migrations = discover_migrations()

        assert [m.version for m in migrations] == ["001"]
        assert migrations[0].name == "pulse_kv"
        assert len(migrations[0].checksum) == 16

    def test_sorted_and_invalid_skipped(self, tmp_path):
        (tmp_path / "v002_second.sql").write_text("SELECT 2;")
        (tmp_path / "v001_first.sql").write_text("SELECT 1;")
        (tmp_path / "version_notes.sql").write_text("-- not a migration")

        migrations = discover_migrations(tmp_path)

        assert [m.name for m in migrations] == ["first", "second"]

    def test_invalid_filename(self, tmp_path):
        path = tmp_path / "schema.sql"
        path.write_text("")
        with pytest.raises(ValueError):
            MigrationInfo.from_file(path)


class TestRunMigrations:
    @pytest.mark.asyncio
    async def test_creates_tables(self, tmp_path):
        db_path = tmp_path / "nested" / "pulse.db"

        results = await run_migrations(db_path)

        assert [r.success for r in results] == [True]
        async with aiosqlite.connect(db_path) as conn:
            cursor = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
            )
            tables = [row[0] for row in await cursor.fetchall()]
        assert "pulse_kv" in tables
        assert "schema_migrations" in tables

    @pytest.mark.asyncio
    async def test_idempotent(self, tmp_path):
        db_path = tmp_path / "pulse.db"
        await run_migrations(db_path)

        assert await run_migrations(db_path) == []

    @pytest.mark.asyncio
    async def test_defaults_to_settings_path(self, tmp_path):
        results = await run_migrations()

        assert results[0].success
        assert (tmp_path / "data" / "pulse.db").exists()
