"""Migration Job — alembic upgrade against a throwaway SQLite database."""

import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine

from streamgate.core.errors import MigrationError
from streamgate.services.migration_job import MIGRATIONS_DIR, MigrationJob, build_alembic_config


async def _table_names(url: str) -> set[str]:
    engine = create_async_engine(url)
    async with engine.connect() as conn:
        names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    await engine.dispose()
    return set(names)


async def test_upgrade_creates_schema(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'migrated.db'}"
    await MigrationJob(url).run()
    assert {"stream_events", "alembic_version"} <= await _table_names(url)


async def test_upgrade_is_idempotent(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'twice.db'}"
    await MigrationJob(url).run()
    await MigrationJob(url).run()
    assert "stream_events" in await _table_names(url)


async def test_failure_surfaces_as_migration_error(tmp_path):
    job = MigrationJob(f"sqlite+aiosqlite:///{tmp_path / 'x.db'}", revision="does_not_exist")
    with pytest.raises(MigrationError):
        await job.run()


def test_config_points_at_packaged_migrations():
    config = build_alembic_config("sqlite+aiosqlite:///:memory:")
    assert config.get_main_option("script_location") == str(MIGRATIONS_DIR)
    assert config.attributes["database_url"] == "sqlite+aiosqlite:///:memory:"
    assert (MIGRATIONS_DIR / "env.py").is_file()
