from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Priority

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


def parse_due_date(value: Any) -> date:
    """
    Normalize due_date input into a calendar date.
    - datetime: its date part
    - date: as-is
    - str: ISO date ('2025-01-31') or ISO datetime ('2025-01-31T13:45:00'), date part kept
    Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        s = value.strip()
        try:
            return date.fromisoformat(s)
        except ValueError:
            try:
                return datetime.fromisoformat(s).date()
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use an ISO8601 date or datetime string (e.g., '2025-01-31')."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


def _clean_description(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    s = v.strip()
    return s or None


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Typed creation input. Built from a payload that already passed validation.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Prepare quarterly report",
                "description": "Collect numbers from finance",
                "due_date": "2025-02-01",
                "priority": "High",
            }
        }
    )

    title: str = Field(..., description="Task title", min_length=3, max_length=255)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    due_date: date = Field(..., description="Due date (ISO8601 date)")
    priority: Priority = Field(..., description="Low, Medium or High")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        return _clean_description(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def normalize_due_date(cls, v: DueDateInput) -> date:
        return parse_due_date(v)

    def columns(self) -> Dict[str, Any]:
        return self.model_dump()


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Typed partial update. Only fields present in the incoming payload are
    reported by `changes()`; absent fields leave the stored value untouched.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Prepare quarterly report v2",
                "due_date": "2025-02-02",
                "priority": "Medium",
                "completed": True,
            }
        }
    )

    title: Optional[str] = Field(default=None, description="Task title", min_length=3, max_length=255)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    due_date: Optional[date] = Field(default=None, description="Due date (ISO8601 date)")
    priority: Optional[Priority] = Field(default=None, description="Low, Medium or High")
    completed: Optional[bool] = Field(default=None, description="Completion status flag")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        return _clean_description(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def normalize_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        return None if v is None else parse_due_date(v)

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly supplied; description may be cleared with null, the rest may not."""
        return {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if value is not None or name == "description"
        }


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 7,
                "title": "Prepare quarterly report",
                "description": "Collect numbers from finance",
                "due_date": "2025-02-01",
                "priority": "High",
                "completed": False,
                "created_at": "2025-01-25T10:15:30.123456",
                "updated_at": "2025-01-26T09:00:00.000001",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    due_date: date = Field(..., description="Due date")
    priority: Priority = Field(..., description="Low, Medium or High")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class TaskResponse(BaseModel):
    """Envelope carrying a single task (or null after a delete)."""

    success: bool = Field(True, description="Whether the request succeeded")
    message: str = Field(..., description="Human readable outcome")
    data: Optional[TaskOut] = Field(default=None, description="The affected task")


class TaskListResponse(BaseModel):
    """Envelope carrying every task, sorted by due date then priority."""

    success: bool = Field(True, description="Whether the request succeeded")
    message: str = Field(..., description="Human readable outcome")
    data: List[TaskOut] = Field(..., description="Sorted list of tasks")


class ErrorResponse(BaseModel):
    """Envelope returned for every failed request."""

    success: bool = Field(False, description="Always false")
    message: str = Field(..., description="What went wrong")
    errors: Optional[List[str]] = Field(default=None, description="Every violated validation rule")
