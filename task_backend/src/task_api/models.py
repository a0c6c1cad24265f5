from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, Optional, TypedDict


class Priority(str, Enum):
    """Task priority levels, stored verbatim."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# Position in listings among tasks due the same day
PRIORITY_RANK: Dict[str, int] = {
    Priority.HIGH.value: 1,
    Priority.MEDIUM.value: 2,
    Priority.LOW.value: 3,
}


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A task row as seen by the application, after normalization.

    Fields:
    - id: Unique integer identifier
    - title: Title (3..255 chars, trimmed on input)
    - description: Optional detailed description
    - due_date: Calendar date the task is due
    - priority: One of 'Low', 'Medium', 'High'
    - completed: Boolean completion flag (never 0/1)
    - created_at: Local creation timestamp
    - updated_at: Local last update timestamp
    """

    id: int
    title: str
    description: Optional[str]
    due_date: date
    priority: str
    completed: bool
    created_at: datetime
    updated_at: datetime
