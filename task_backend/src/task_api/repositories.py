from __future__ import annotations

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .db import COLS, Database, DatabaseError
from .errors import NoFieldsToUpdate, TaskOperationError
from .models import PRIORITY_RANK, TaskEntity

logger = logging.getLogger(__name__)

_PRIORITY_ORDER = "CASE {col} {whens} END".format(
    col=COLS.priority,
    whens=" ".join(f"WHEN '{name}' THEN {rank}" for name, rank in PRIORITY_RANK.items()),
)

_SELECT_ALL = f"""
SELECT * FROM {COLS.table}
ORDER BY {COLS.due_date} ASC, {_PRIORITY_ORDER} ASC, {COLS.id} ASC
"""
_SELECT_ONE = f"SELECT * FROM {COLS.table} WHERE {COLS.id} = ?"
_INSERT = f"""
INSERT INTO {COLS.table} ({COLS.title}, {COLS.description}, {COLS.due_date},
    {COLS.priority}, {COLS.completed}, {COLS.created_at}, {COLS.updated_at})
VALUES (?, ?, ?, ?, ?, ?, ?)
"""
_DELETE = f"DELETE FROM {COLS.table} WHERE {COLS.id} = ?"


def _now() -> str:
    return datetime.now().isoformat()


def _to_db(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


# PUBLIC_INTERFACE
class UpdateSet:
    """
    Collects (column, value) pairs for a partial UPDATE.

    Only columns in PERMITTED can be set, so the generated SET clause never
    contains caller-supplied identifiers.
    """

    PERMITTED: Tuple[str, ...] = (
        COLS.title,
        COLS.description,
        COLS.due_date,
        COLS.priority,
        COLS.completed,
    )

    def __init__(self) -> None:
        self._pairs: List[Tuple[str, Any]] = []

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> "UpdateSet":
        builder = cls()
        for column in cls.PERMITTED:
            if column in fields:
                builder.set(column, fields[column])
        return builder

    def set(self, column: str, value: Any) -> "UpdateSet":
        if column not in self.PERMITTED:
            raise ValueError(f"Column {column!r} cannot be updated")
        self._pairs = [(c, v) for c, v in self._pairs if c != column]
        self._pairs.append((column, _to_db(value)))
        return self

    @property
    def columns(self) -> List[str]:
        return [c for c, _ in self._pairs]

    def __bool__(self) -> bool:
        return bool(self._pairs)

    def to_sql(self, task_id: int, updated_at: str) -> Tuple[str, List[Any]]:
        """Render the UPDATE statement; the modification timestamp is always set."""
        assignments = [f"{c} = ?" for c in self.columns] + [f"{COLS.updated_at} = ?"]
        params = [v for _, v in self._pairs] + [updated_at, task_id]
        sql = f"UPDATE {COLS.table} SET {', '.join(assignments)} WHERE {COLS.id} = ?"
        return sql, params


def _row_to_entity(row: Dict[str, Any]) -> TaskEntity:
    return {
        "id": int(row[COLS.id]),
        "title": str(row[COLS.title]),
        "description": row[COLS.description],
        "due_date": date.fromisoformat(str(row[COLS.due_date])),
        "priority": str(row[COLS.priority]),
        "completed": bool(row[COLS.completed]),
        "created_at": datetime.fromisoformat(str(row[COLS.created_at])),
        "updated_at": datetime.fromisoformat(str(row[COLS.updated_at])),
    }


# PUBLIC_INTERFACE
class TaskRepository:
    """
    SQL access for the tasks table.

    Storage failures are logged here and surface as TaskOperationError with a
    generic message; callers never see driver errors.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def list_all(self) -> List[TaskEntity]:
        """All tasks by due date, then High < Medium < Low."""
        try:
            rows = await self._db.fetch_all(_SELECT_ALL)
        except DatabaseError as exc:
            logger.error("Failed to list tasks: %s", exc)
            raise TaskOperationError("Failed to retrieve tasks") from exc
        return [_row_to_entity(r) for r in rows]

    async def get_by_id(self, task_id: int) -> Optional[TaskEntity]:
        try:
            row = await self._db.fetch_one(_SELECT_ONE, (task_id,))
        except DatabaseError as exc:
            logger.error("Failed to fetch task %s: %s", task_id, exc)
            raise TaskOperationError("Failed to retrieve task") from exc
        return _row_to_entity(row) if row else None

    async def create(self, fields: Mapping[str, Any]) -> int:
        """Insert a new, not yet completed task and return its id."""
        now = _now()
        params = (
            fields["title"],
            fields.get("description"),
            _to_db(fields["due_date"]),
            _to_db(fields["priority"]),
            0,
            now,
            now,
        )
        try:
            result = await self._db.execute(_INSERT, params)
        except DatabaseError as exc:
            logger.error("Failed to create task: %s", exc)
            raise TaskOperationError("Failed to create task") from exc
        if result.insert_id is None:
            raise TaskOperationError("Failed to create task")
        logger.debug("Created task %s", result.insert_id)
        return result.insert_id

    async def update(self, task_id: int, fields: Mapping[str, Any]) -> int:
        """
        Apply the supplied subset of fields. Returns the affected row count,
        0 when no task has this id. Raises NoFieldsToUpdate when nothing
        updatable was supplied.
        """
        changes = UpdateSet.from_fields(fields)
        if not changes:
            raise NoFieldsToUpdate()
        sql, params = changes.to_sql(task_id, _now())
        try:
            result = await self._db.execute(sql, params)
        except DatabaseError as exc:
            logger.error("Failed to update task %s: %s", task_id, exc)
            raise TaskOperationError("Failed to update task") from exc
        logger.debug("Updated task %s columns=%s rows=%d", task_id, changes.columns, result.affected_rows)
        return result.affected_rows

    async def delete(self, task_id: int) -> int:
        try:
            result = await self._db.execute(_DELETE, (task_id,))
        except DatabaseError as exc:
            logger.error("Failed to delete task %s: %s", task_id, exc)
            raise TaskOperationError("Failed to delete task") from exc
        return result.affected_rows
