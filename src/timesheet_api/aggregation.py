"""
Derived-field computation for timesheets.

Hours arrive from clients as numbers, numeric strings, blanks or nothing at
all. Blank and missing mean "no hours logged"; for totals they count as 0.
"""
from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional


# PUBLIC_INTERFACE
def parse_hours(value: Any) -> Optional[float]:
    """
    Normalize a raw hours value.

    Returns None for absent, null, blank, unparsable or non-finite values and
    the float value otherwise. Never raises.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(hours):
        return None
    return hours


# PUBLIC_INTERFACE
def effective_hours(value: Any) -> float:
    """Hours used for aggregation: the parsed value, or 0 when there is none."""
    hours = parse_hours(value)
    return 0.0 if hours is None else hours


# PUBLIC_INTERFACE
def compute_total(entries: Optional[Iterable[Mapping[str, Any]]]) -> float:
    """
    Sum the effective hours of all entries.

    Example:
        compute_total([{"hours": 2}, {"hours": ""}, {"hours": "3.5"}]) == 5.5
    """
    if not entries:
        return 0.0
    return float(sum(effective_hours(entry.get("hours")) for entry in entries))
