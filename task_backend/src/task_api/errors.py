from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional


class ErrorKind(str, Enum):
    """Category of a domain failure; the HTTP layer picks a status code from it."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    NO_CHANGE = "no_change"
    INTERNAL = "internal"


@dataclass(frozen=True)
class FieldError:
    """A single violated rule, tagged with the payload field it concerns."""

    field: str
    message: str


# PUBLIC_INTERFACE
class TaskError(Exception):
    """Base class for task domain errors."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class TaskValidationError(TaskError):
    """Raised when a payload violates one or more validation rules."""

    kind = ErrorKind.VALIDATION
    default_message = "Validation failed"

    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors: List[FieldError] = list(errors)
        super().__init__()

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.errors]


class TaskNotFound(TaskError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Task not found"


class NoChangeError(TaskError):
    """An update matched no row even though the task was found beforehand."""

    kind = ErrorKind.NO_CHANGE
    default_message = "No changes made to the task"


class NoFieldsToUpdate(NoChangeError):
    default_message = "No valid fields to update"


class TaskOperationError(TaskError):
    """Storage failure; the underlying detail is logged, not carried."""

    kind = ErrorKind.INTERNAL
    default_message = "Task operation failed"
