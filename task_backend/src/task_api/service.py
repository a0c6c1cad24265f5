from __future__ import annotations

import logging
from typing import List

from .errors import NoChangeError, TaskNotFound, TaskOperationError
from .models import TaskEntity
from .repositories import TaskRepository
from .schemas import TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TaskService:
    """
    Task use cases on top of the repository.

    This is the only place that raises TaskNotFound. Zero affected rows after
    a successful existence check is reported as a failure, not ignored.
    """

    def __init__(self, repository: TaskRepository) -> None:
        self._repo = repository

    async def list_tasks(self) -> List[TaskEntity]:
        return await self._repo.list_all()

    async def get_or_fail(self, task_id: int) -> TaskEntity:
        task = await self._repo.get_by_id(task_id)
        if task is None:
            raise TaskNotFound()
        return task

    async def create_task(self, data: TaskCreate) -> TaskEntity:
        """Insert, then read back the stored row so defaults and timestamps are included."""
        task_id = await self._repo.create(data.columns())
        created = await self._repo.get_by_id(task_id)
        if created is None:
            raise TaskOperationError("Failed to create task")
        logger.info("Task %s created", task_id)
        return created

    async def update_task(self, task_id: int, data: TaskUpdate) -> TaskEntity:
        await self.get_or_fail(task_id)
        changed = await self._repo.update(task_id, data.changes())
        if changed == 0:
            raise NoChangeError()
        logger.info("Task %s updated", task_id)
        return await self.get_or_fail(task_id)

    async def delete_task(self, task_id: int) -> bool:
        await self.get_or_fail(task_id)
        deleted = await self._repo.delete(task_id)
        if deleted == 0:
            raise TaskOperationError("Failed to delete task")
        logger.info("Task %s deleted", task_id)
        return True
