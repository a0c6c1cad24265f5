from __future__ import annotations

import asyncio

import pytest

from task_api.db import Database, DatabaseError, DatabaseUnavailable

_INSERT = (
    "INSERT INTO tasks (title, description, due_date, priority, completed, created_at, updated_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?)"
)


def _row(title: str = "Row title", priority: str = "Low"):
    return (title, None, "2030-01-01", priority, 0, "2030-01-01T00:00:00", "2030-01-01T00:00:00")


@pytest.mark.asyncio
async def test_insert_update_delete_report_counts(database: Database) -> None:
    inserted = await database.execute(_INSERT, _row())
    assert inserted.insert_id == 1
    assert inserted.affected_rows == 1

    updated = await database.execute("UPDATE tasks SET title = ? WHERE id = ?", ("Renamed", 1))
    assert updated.affected_rows == 1

    missing = await database.execute("DELETE FROM tasks WHERE id = ?", (999,))
    assert missing.affected_rows == 0


@pytest.mark.asyncio
async def test_fetch_returns_plain_dicts(database: Database) -> None:
    await database.execute(_INSERT, _row("First"))
    rows = await database.fetch_all("SELECT id, title FROM tasks")
    assert rows == [{"id": 1, "title": "First"}]
    assert await database.fetch_one("SELECT * FROM tasks WHERE id = ?", (42,)) is None


@pytest.mark.asyncio
async def test_schema_rejects_unknown_priority(database: Database) -> None:
    with pytest.raises(DatabaseError):
        await database.execute(_INSERT, _row(priority="Urgent"))


@pytest.mark.asyncio
async def test_connection_released_after_error(db_path: str) -> None:
    db = Database(db_path, pool_size=1, acquire_timeout=1.0)
    await db.initialize()
    try:
        with pytest.raises(DatabaseError):
            await db.fetch_all("SELECT * FROM no_such_table")
        # The single pooled connection must be usable again
        assert await db.fetch_one("SELECT 1 AS ok") == {"ok": 1}
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_acquire_times_out_when_pool_exhausted(db_path: str) -> None:
    db = Database(db_path, pool_size=1, acquire_timeout=0.1)
    await db.initialize()
    held = asyncio.Event()
    release = asyncio.Event()

    async def hold_only_connection() -> None:
        async with db._acquire():
            held.set()
            await release.wait()

    holder = asyncio.create_task(hold_only_connection())
    try:
        await held.wait()
        with pytest.raises(DatabaseUnavailable):
            await db.fetch_one("SELECT 1")
        release.set()
        await holder
        assert await db.fetch_one("SELECT 1 AS ok") == {"ok": 1}
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_concurrent_queries_share_bounded_pool(db_path: str) -> None:
    db = Database(db_path, pool_size=2, acquire_timeout=5.0)
    await db.initialize()
    try:
        results = await asyncio.gather(*(db.fetch_one("SELECT ? AS n", (i,)) for i in range(8)))
        assert [r["n"] for r in results] == list(range(8))
        assert len(db._idle) <= 2
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_closed_pool_is_unavailable(db_path: str) -> None:
    db = Database(db_path, pool_size=1)
    await db.initialize()
    await db.close()
    await db.close()
    assert not db.is_open
    with pytest.raises(DatabaseUnavailable):
        await db.fetch_all("SELECT 1")


def test_pool_size_must_be_positive(db_path: str) -> None:
    with pytest.raises(ValueError):
        Database(db_path, pool_size=0)


@pytest.mark.asyncio
async def test_out_of_range_parameter_becomes_database_error(database: Database) -> None:
    with pytest.raises(DatabaseError) as exc_info:
        await database.fetch_one("SELECT * FROM tasks WHERE id = ?", (10**20,))
    assert isinstance(exc_info.value.__cause__, OverflowError)
    # The connection went back to the pool
    assert await database.fetch_one("SELECT 1 AS ok") == {"ok": 1}
