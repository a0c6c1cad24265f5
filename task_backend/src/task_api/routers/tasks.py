from __future__ import annotations

import re
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status

from ..errors import FieldError, TaskNotFound, TaskValidationError
from ..schemas import ErrorResponse, TaskCreate, TaskListResponse, TaskOut, TaskResponse, TaskUpdate
from ..service import TaskService
from ..utils import success_envelope
from ..validation import collect_task_errors, collect_toggle_errors

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)

_ID_PATTERN = re.compile(r"[0-9]+")
# Largest value an SQLite INTEGER primary key can hold
MAX_TASK_ID = 2**63 - 1

_NOT_FOUND = {"model": ErrorResponse, "description": "Task not found"}
_BAD_REQUEST = {"model": ErrorResponse, "description": "Validation error"}
_SERVER_ERROR = {"model": ErrorResponse, "description": "Storage failure"}


def get_task_service(request: Request) -> TaskService:
    """
    Dependency returning the service built by the application lifespan.
    """
    return request.app.state.task_service


def parse_task_id(task_id: str) -> int:
    """
    Path ids must be positive integers; anything else is a 400. Ids past the
    INTEGER range cannot belong to a row and are reported as not found.
    """
    raw = task_id.strip()
    if not _ID_PATTERN.fullmatch(raw) or int(raw) <= 0:
        raise TaskValidationError([FieldError("id", "Valid task ID is required")])
    tid = int(raw)
    if tid > MAX_TASK_ID:
        raise TaskNotFound()
    return tid


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TaskListResponse,
    summary="List Tasks",
    description="List every task ordered by due date (ascending), then priority High, Medium, Low.",
    responses={200: {"description": "Tasks retrieved"}, 500: _SERVER_ERROR},
)
async def list_tasks(service: TaskService = Depends(get_task_service)) -> TaskListResponse:
    tasks = await service.list_tasks()
    envelope = success_envelope([TaskOut(**t) for t in tasks], "Tasks retrieved successfully")
    return TaskListResponse(**envelope)


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={200: {"description": "Task found"}, 400: _BAD_REQUEST, 404: _NOT_FOUND},
)
async def get_task(task_id: str, service: TaskService = Depends(get_task_service)) -> TaskResponse:
    task = await service.get_or_fail(parse_task_id(task_id))
    return TaskResponse(**success_envelope(TaskOut(**task), "Task retrieved successfully"))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description=(
        "Create a task from title, due_date, priority and an optional description. "
        "New tasks always start as not completed."
    ),
    responses={201: {"description": "Task created"}, 400: _BAD_REQUEST, 500: _SERVER_ERROR},
)
async def create_task(
    payload: Any = Body(None, examples=[TaskCreate.model_config["json_schema_extra"]["example"]]),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    """
    Create a new task. Every violated rule is reported in one 400 response.
    """
    errors = collect_task_errors(payload, is_update=False)
    if errors:
        raise TaskValidationError(errors)
    created = await service.create_task(TaskCreate.model_validate(payload))
    return TaskResponse(**success_envelope(TaskOut(**created), "Task created successfully"))


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Update Task",
    description=(
        "Update a task. Only supplied fields change; title may be omitted, due_date and "
        "priority are required. `completed` accepts true/false, 1/0 and their string forms."
    ),
    responses={200: {"description": "Task updated"}, 400: _BAD_REQUEST, 404: _NOT_FOUND, 500: _SERVER_ERROR},
)
async def update_task(
    task_id: str,
    payload: Any = Body(None, examples=[TaskUpdate.model_config["json_schema_extra"]["example"]]),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    tid = parse_task_id(task_id)
    errors = collect_task_errors(payload, is_update=True)
    if errors:
        raise TaskValidationError(errors)
    updated = await service.update_task(tid, TaskUpdate.model_validate(payload))
    return TaskResponse(**success_envelope(TaskOut(**updated), "Task updated successfully"))


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}/toggle",
    response_model=TaskResponse,
    summary="Set Task Completion",
    description="Set the completion flag. The body must be {\"completed\": true|false}.",
    responses={200: {"description": "Completion updated"}, 400: _BAD_REQUEST, 404: _NOT_FOUND},
)
async def toggle_task(
    task_id: str,
    payload: Any = Body(None, examples=[{"completed": True}]),
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    tid = parse_task_id(task_id)
    errors = collect_toggle_errors(payload)
    if errors:
        raise TaskValidationError(errors)
    updated = await service.update_task(tid, TaskUpdate(completed=payload["completed"]))
    return TaskResponse(**success_envelope(TaskOut(**updated), "Task completion updated successfully"))


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Delete Task",
    description="Delete a task by ID.",
    responses={200: {"description": "Task deleted"}, 400: _BAD_REQUEST, 404: _NOT_FOUND, 500: _SERVER_ERROR},
)
async def delete_task(task_id: str, service: TaskService = Depends(get_task_service)) -> TaskResponse:
    """
    Delete a task. Returns 200 with null data on success, 404 if not found.
    """
    await service.delete_task(parse_task_id(task_id))
    return TaskResponse(**success_envelope(None, "Task deleted successfully"))
