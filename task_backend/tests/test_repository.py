from __future__ import annotations

import logging
from datetime import date, datetime

import pytest

from task_api.db import Database
from task_api.errors import ErrorKind, NoFieldsToUpdate, TaskOperationError
from task_api.models import Priority
from task_api.repositories import TaskRepository, UpdateSet


def fields(title="Write report", due="2030-05-01", priority="Medium", description="Quarterly numbers"):
    return {"title": title, "description": description, "due_date": due, "priority": priority}


@pytest.mark.asyncio
async def test_create_then_get_round_trip(repository: TaskRepository) -> None:
    task_id = await repository.create(fields())
    task = await repository.get_by_id(task_id)

    assert task is not None
    assert task["id"] == task_id
    assert task["title"] == "Write report"
    assert task["description"] == "Quarterly numbers"
    assert task["due_date"] == date(2030, 5, 1)
    assert task["priority"] == "Medium"
    assert task["completed"] is False
    assert isinstance(task["created_at"], datetime)
    assert task["created_at"] == task["updated_at"]


@pytest.mark.asyncio
async def test_create_accepts_typed_values(repository: TaskRepository) -> None:
    task_id = await repository.create(fields(due=date(2030, 6, 2), priority=Priority.HIGH, description=None))
    task = await repository.get_by_id(task_id)
    assert task["due_date"] == date(2030, 6, 2)
    assert task["priority"] == "High"
    assert task["description"] is None


@pytest.mark.asyncio
async def test_get_unknown_id_returns_none(repository: TaskRepository) -> None:
    assert await repository.get_by_id(12345) is None


@pytest.mark.asyncio
async def test_list_orders_by_due_date_then_priority(repository: TaskRepository) -> None:
    await repository.create(fields(title="Later low", due="2025-01-02", priority="Low"))
    await repository.create(fields(title="Early low", due="2025-01-01", priority="Low"))
    await repository.create(fields(title="Early high", due="2025-01-01", priority="High"))
    await repository.create(fields(title="Early medium", due="2025-01-01", priority="Medium"))

    tasks = await repository.list_all()

    assert [(t["due_date"].isoformat(), t["priority"]) for t in tasks] == [
        ("2025-01-01", "High"),
        ("2025-01-01", "Medium"),
        ("2025-01-01", "Low"),
        ("2025-01-02", "Low"),
    ]


@pytest.mark.asyncio
async def test_update_changes_only_supplied_fields(repository: TaskRepository) -> None:
    task_id = await repository.create(fields())
    before = await repository.get_by_id(task_id)

    assert await repository.update(task_id, {"priority": "High", "completed": True}) == 1

    after = await repository.get_by_id(task_id)
    assert after["priority"] == "High"
    assert after["completed"] is True
    assert after["title"] == before["title"]
    assert after["description"] == before["description"]
    assert after["due_date"] == before["due_date"]
    assert after["created_at"] == before["created_at"]
    assert after["updated_at"] >= before["updated_at"]


@pytest.mark.asyncio
async def test_completed_column_is_normalized_on_read(repository: TaskRepository, database: Database) -> None:
    task_id = await repository.create(fields())
    await repository.update(task_id, {"completed": True})

    raw = await database.fetch_one("SELECT completed FROM tasks WHERE id = ?", (task_id,))
    assert raw["completed"] == 1
    task = await repository.get_by_id(task_id)
    assert task["completed"] is True
    assert all(isinstance(t["completed"], bool) for t in await repository.list_all())


@pytest.mark.asyncio
async def test_update_unknown_id_affects_nothing(repository: TaskRepository) -> None:
    assert await repository.update(999, {"title": "Nobody"}) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"owner": "me"}, {"id": 3, "created_at": "2020-01-01"}])
async def test_update_without_permitted_fields(repository: TaskRepository, payload) -> None:
    task_id = await repository.create(fields())
    with pytest.raises(NoFieldsToUpdate) as exc_info:
        await repository.update(task_id, payload)
    assert exc_info.value.kind is ErrorKind.NO_CHANGE


@pytest.mark.asyncio
async def test_delete_reports_affected_rows(repository: TaskRepository) -> None:
    task_id = await repository.create(fields())
    assert await repository.delete(task_id) == 1
    assert await repository.delete(task_id) == 0
    assert await repository.get_by_id(task_id) is None


@pytest.mark.asyncio
async def test_storage_errors_are_wrapped_and_logged(
    repository: TaskRepository, database: Database, caplog: pytest.LogCaptureFixture
) -> None:
    await database.close()
    with caplog.at_level(logging.ERROR, logger="task_api"):
        with pytest.raises(TaskOperationError) as exc_info:
            await repository.list_all()
    assert exc_info.value.message == "Failed to retrieve tasks"
    assert "not open" not in exc_info.value.message
    assert any("not open" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_constraint_violation_becomes_generic_failure(repository: TaskRepository) -> None:
    with pytest.raises(TaskOperationError) as exc_info:
        await repository.create(fields(priority="Urgent"))
    assert exc_info.value.message == "Failed to create task"


class TestUpdateSet:
    def test_collects_permitted_columns_in_fixed_order(self):
        builder = UpdateSet.from_fields(
            {"completed": False, "title": "New", "owner": "ignored", "priority": Priority.LOW}
        )
        sql, params = builder.to_sql(7, "2030-01-01T00:00:00")
        assert builder.columns == ["title", "priority", "completed"]
        assert sql == "UPDATE tasks SET title = ?, priority = ?, completed = ?, updated_at = ? WHERE id = ?"
        assert params == ["New", "Low", 0, "2030-01-01T00:00:00", 7]

    def test_dates_are_serialized(self):
        _, params = UpdateSet().set("due_date", date(2030, 2, 3)).to_sql(1, "now")
        assert params[0] == "2030-02-03"

    def test_rejects_columns_outside_allow_list(self):
        with pytest.raises(ValueError):
            UpdateSet().set("id; DROP TABLE tasks", 1)

    def test_empty_builder_is_falsy(self):
        assert not UpdateSet.from_fields({"created_at": "x"})


@pytest.mark.asyncio
async def test_out_of_range_id_is_wrapped(repository: TaskRepository) -> None:
    with pytest.raises(TaskOperationError) as exc_info:
        await repository.get_by_id(10**20)
    assert exc_info.value.message == "Failed to retrieve task"
