"""
Validation rules for task payloads.

Every rule runs on every call so a client receives all problems at once.
Rules only inspect the payload, except the `completed` rule which writes the
coerced boolean back so persistence always sees a real bool.
"""
from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

from .errors import FieldError
from .models import Priority
from .schemas import parse_due_date

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 255
DESCRIPTION_MIN_LENGTH = 5
DESCRIPTION_MAX_LENGTH = 1000
MAX_DAYS_AHEAD = 365

CREATE_FIELDS = frozenset({"title", "description", "due_date", "priority"})
PRIORITIES = tuple(p.value for p in Priority)

_TITLE_ALLOWED = re.compile(r"^[\w\s.,!?'\"()\-:;&/#@+%*]+$")
_SCRIPT_TAG = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)

_TRUE_STRINGS = frozenset({"true", "1"})
_FALSE_STRINGS = frozenset({"false", "0"})

_MISSING = object()


def _title_errors(data: Dict[str, Any], is_update: bool) -> List[FieldError]:
    title = data.get("title", _MISSING)
    if is_update and (title is _MISSING or title is None):
        return []
    if not isinstance(title, str) or not title.strip():
        return [FieldError("title", "Title is required and must be a non-empty string")]

    errors: List[FieldError] = []
    trimmed = title.strip()
    if len(trimmed) < TITLE_MIN_LENGTH:
        errors.append(FieldError("title", f"Title must be at least {TITLE_MIN_LENGTH} characters long"))
    elif len(trimmed) > TITLE_MAX_LENGTH:
        errors.append(FieldError("title", f"Title must not exceed {TITLE_MAX_LENGTH} characters"))
    if not _TITLE_ALLOWED.match(trimmed):
        errors.append(FieldError("title", "Title contains invalid characters"))
    return errors


def _due_date_errors(data: Dict[str, Any], today: date) -> List[FieldError]:
    raw = data.get("due_date")
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return [FieldError("due_date", "Due date is required")]
    try:
        due = parse_due_date(raw)
    except ValueError:
        return [FieldError("due_date", "Due date must be a valid date")]

    if due < today:
        return [FieldError("due_date", "Due date cannot be in the past")]
    if due > today + timedelta(days=MAX_DAYS_AHEAD):
        return [FieldError("due_date", f"Due date cannot be more than {MAX_DAYS_AHEAD} days in the future")]
    return []


def _priority_errors(data: Dict[str, Any]) -> List[FieldError]:
    priority = data.get("priority")
    if priority is None or priority == "":
        return [FieldError("priority", "Priority is required")]
    if not isinstance(priority, str) or priority not in PRIORITIES:
        return [FieldError("priority", "Priority must be Low, Medium, or High")]
    return []


def _description_errors(data: Dict[str, Any]) -> List[FieldError]:
    description = data.get("description")
    if description is None:
        return []
    if not isinstance(description, str):
        return [FieldError("description", "Description must be a string")]

    errors: List[FieldError] = []
    length = len(description.strip())
    if 0 < length < DESCRIPTION_MIN_LENGTH:
        errors.append(
            FieldError("description", f"Description must be at least {DESCRIPTION_MIN_LENGTH} characters long")
        )
    elif length > DESCRIPTION_MAX_LENGTH:
        errors.append(
            FieldError("description", f"Description must not exceed {DESCRIPTION_MAX_LENGTH} characters")
        )
    if _SCRIPT_TAG.search(description):
        errors.append(FieldError("description", "Description must not contain script tags"))
    return errors


def coerce_completed(value: Any) -> Optional[bool]:
    """
    Map the accepted spellings of a completion flag to a bool.

    Returns None when the value is a string or number outside the accepted
    forms. Other types fall back to truthiness.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        return None
    if isinstance(value, (int, float)):
        if value == 1:
            return True
        if value == 0:
            return False
        return None
    return bool(value)


def _completed_errors(data: Dict[str, Any]) -> List[FieldError]:
    if "completed" not in data:
        return []
    coerced = coerce_completed(data["completed"])
    if coerced is None:
        return [FieldError("completed", "Completed must be a boolean value")]
    data["completed"] = coerced
    return []


def _unknown_field_errors(data: Dict[str, Any]) -> List[FieldError]:
    unknown = sorted(str(k) for k in data if k not in CREATE_FIELDS)
    if not unknown:
        return []
    return [FieldError("payload", f"Unknown field(s) not allowed: {', '.join(unknown)}")]


# PUBLIC_INTERFACE
def collect_task_errors(payload: Any, is_update: bool = False, today: Optional[date] = None) -> List[FieldError]:
    """
    Return every rule the payload violates, tagged by field. Empty means valid.

    `today` defaults to the local calendar date; tests pin it.
    """
    if not isinstance(payload, dict):
        return [FieldError("payload", "Request body must be a JSON object")]

    today = today or date.today()
    rules: List[Callable[[], List[FieldError]]] = [
        lambda: _title_errors(payload, is_update),
        lambda: _due_date_errors(payload, today),
        lambda: _priority_errors(payload),
        lambda: _description_errors(payload),
    ]
    if is_update:
        rules.append(lambda: _completed_errors(payload))
    else:
        rules.append(lambda: _unknown_field_errors(payload))

    errors: List[FieldError] = []
    for rule in rules:
        errors.extend(rule())
    return errors


# PUBLIC_INTERFACE
def validate_task_data(payload: Any, is_update: bool = False, today: Optional[date] = None) -> List[str]:
    """Human readable messages for every violated rule."""
    return [e.message for e in collect_task_errors(payload, is_update, today)]


# PUBLIC_INTERFACE
def collect_toggle_errors(payload: Any) -> List[FieldError]:
    """A toggle body must be an object whose `completed` is a JSON boolean."""
    if not isinstance(payload, dict) or not isinstance(payload.get("completed"), bool):
        return [FieldError("completed", "Completed field must be a boolean")]
    return []
