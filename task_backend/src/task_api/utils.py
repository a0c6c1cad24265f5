from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


# PUBLIC_INTERFACE
def success_envelope(data: Any, message: str = "Success") -> Dict[str, Any]:
    """
    Build the standard success envelope.

    Args:
        data: Payload for the 'data' key (None is kept as null).
        message: Human readable outcome.

    Returns:
        Dict with keys: success, message, data.
    """
    return {"success": True, "message": message, "data": data}


# PUBLIC_INTERFACE
def error_envelope(message: str = "Internal Server Error", errors: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """
    Build the standard error envelope. The 'errors' key is only present when
    there is at least one message to report.
    """
    body: Dict[str, Any] = {"success": False, "message": message}
    materialized: List[str] = list(errors) if errors is not None else []
    if materialized:
        body["errors"] = materialized
    return body
