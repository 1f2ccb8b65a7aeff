from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Union


# PUBLIC_INTERFACE
def list_envelope(items: Union[Sequence[Any], Iterable[Any]]) -> Dict[str, Any]:
    """
    Build the standard envelope for list endpoints.

    Returns:
        Dict with keys: success, data, total.
    """
    materialized: List[Any] = list(items) if not isinstance(items, list) else items
    return {"success": True, "data": materialized, "total": len(materialized)}


# PUBLIC_INTERFACE
def record_envelope(item: Any, message: Optional[str] = None) -> Dict[str, Any]:
    """Envelope for endpoints returning a single timesheet."""
    return {"success": True, "message": message, "data": item}


def error_body(message: str, **extra: Any) -> Dict[str, Any]:
    return {"success": False, "message": message, **extra}
