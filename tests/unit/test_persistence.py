"""Unit tests for persistence layer (database, migrations, run log)."""

import sqlite3

import pytest

from vaxnotify.persistence.db import DatabaseManager
from vaxnotify.persistence.migrate import (
    MIGRATIONS_DIR,
    apply_migrations,
    calculate_checksum,
    discover_migrations,
)
from vaxnotify.persistence.run_log import RunLog


# Database Connection Tests

@pytest.mark.asyncio
async def test_get_connection_wal_mode(tmp_path):
    """Verify WAL mode and pragmas are set on the connection."""
    db_manager = DatabaseManager(tmp_path / "test.db")

    conn = await db_manager.get_connection()

    cursor = await conn.execute("PRAGMA journal_mode")
    assert (await cursor.fetchone())[0].lower() == "wal"
    await cursor.close()

    cursor = await conn.execute("PRAGMA busy_timeout")
    assert (await cursor.fetchone())[0] == 5000
    await cursor.close()

    await db_manager.close()


@pytest.mark.asyncio
async def test_connection_is_reused(tmp_path):
    db_manager = DatabaseManager(tmp_path / "nested" / "test.db")

    conn1 = await db_manager.get_connection()
    conn2 = await db_manager.get_connection()

    assert conn1 is conn2
    assert (tmp_path / "nested").is_dir()
    await db_manager.close()


@pytest.mark.asyncio
async def test_busy_timeout_is_configurable(tmp_path):
    db_manager = DatabaseManager(tmp_path / "test.db", busy_timeout_ms=250)

    conn = await db_manager.get_connection()

    cursor = await conn.execute("PRAGMA busy_timeout")
    assert (await cursor.fetchone())[0] == 250
    await cursor.close()
    await db_manager.close()


@pytest.mark.asyncio
async def test_journal_mode_without_wal_still_connects():
    """An in-memory database refuses WAL; the connection is still usable."""
    db_manager = DatabaseManager(":memory:")

    conn = await db_manager.get_connection()

    cursor = await conn.execute("PRAGMA journal_mode")
    assert (await cursor.fetchone())[0].lower() == "memory"
    await cursor.close()
    await db_manager.close()


# Migration Runner Tests

def test_calculate_checksum_sha256(tmp_path):
    test_file = tmp_path / "test.sql"
    test_file.write_text("CREATE TABLE test (id INTEGER PRIMARY KEY);")

    checksum = calculate_checksum(test_file)

    assert len(checksum) == 64
    assert checksum == calculate_checksum(test_file)


def test_discover_migrations_lexical_order(tmp_path):
    (tmp_path / "0002_second.sql").write_text("-- Second")
    (tmp_path / "0001_first.sql").write_text("-- First")

    assert [name for name, _ in discover_migrations(tmp_path)] == ["0001_first.sql", "0002_second.sql"]


def test_apply_migrations_is_idempotent(tmp_path):
    db_path = tmp_path / "test.db"

    assert apply_migrations(db_path) == len(discover_migrations(MIGRATIONS_DIR))
    assert apply_migrations(db_path) == 0


def test_apply_migrations_detects_modified_file(tmp_path):
    db_path = tmp_path / "test.db"
    migrations_dir = tmp_path / "migrations"
    migrations_dir.mkdir()
    migration = migrations_dir / "0001_init.sql"
    migration.write_text("CREATE TABLE test (id INTEGER PRIMARY KEY) STRICT;")
    apply_migrations(db_path, migrations_dir)

    migration.write_text("CREATE TABLE test (id INTEGER, name TEXT);")

    with pytest.raises(RuntimeError, match="modified after being applied"):
        apply_migrations(db_path, migrations_dir)


def test_initial_schema_tables(tmp_path):
    db_path = tmp_path / "test.db"
    apply_migrations(db_path)

    conn = sqlite3.connect(str(db_path))
    tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    conn.close()

    assert {"snapshots", "pipeline_runs", "schema_migrations"} <= tables


def test_pipeline_runs_status_check(tmp_path):
    db_path = tmp_path / "test.db"
    apply_migrations(db_path)

    conn = sqlite3.connect(str(db_path))
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO pipeline_runs (run_id, domain, started_at, status) VALUES ('r', 'd', 0, 'bogus')"
        )
    conn.close()


# Run Log Tests

@pytest.mark.asyncio
async def test_run_log_start_and_end(db_manager):
    run_log = RunLog(db_manager)

    await run_log.log_run_start("run-1", "free_dates", dry=True)
    await run_log.log_run_end(
        "run-1",
        "notify_failed",
        counts={"added": 1, "removed": 0, "changed": 2, "targets": 2},
        failed_sinks=["telegram"],
        error_details={"failures": [{"sink_id": "telegram"}]},
    )

    (run,) = await run_log.recent_runs("free_dates")
    assert run["run_id"] == "run-1"
    assert run["status"] == "notify_failed"
    assert run["dry"] is True
    assert run["added_count"] == 1
    assert run["changed_count"] == 2
    assert run["target_count"] == 2
    assert run["failed_sinks"] == ["telegram"]
    assert run["error_details"] == {"failures": [{"sink_id": "telegram"}]}
    assert run["finished_at"] is not None


@pytest.mark.asyncio
async def test_run_log_failed_run_without_counts(db_manager):
    run_log = RunLog(db_manager)

    await run_log.log_run_start("run-2", "eligible_groups")
    await run_log.log_run_end("run-2", "failed", error_details={"code": "collection_failed"})

    (run,) = await run_log.recent_runs("eligible_groups")
    assert run["status"] == "failed"
    assert run["added_count"] is None
    assert run["failed_sinks"] == []


@pytest.mark.asyncio
async def test_run_log_filters_by_domain_and_limits(db_manager):
    run_log = RunLog(db_manager)
    for i in range(3):
        await run_log.log_run_start(f"fd-{i}", "free_dates")
    await run_log.log_run_start("eg-0", "eligible_groups")

    runs = await run_log.recent_runs("free_dates", limit=2)

    assert [run["run_id"] for run in runs] == ["fd-2", "fd-1"]


@pytest.mark.asyncio
async def test_run_log_without_migrations_raises(tmp_path):
    db_manager = DatabaseManager(tmp_path / "empty.db")
    run_log = RunLog(db_manager)

    with pytest.raises(RuntimeError, match="migrations"):
        await run_log.log_run_start("run-x", "free_dates")

    await db_manager.close()
