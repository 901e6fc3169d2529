"""Coercion of dynamic entity values to numbers, strings and dates."""
from __future__ import annotations

import json
import math
import re
from datetime import date, datetime, timezone
from typing import Any

from rcm_workflow.utils import parse_flexible_date

# Leading numeric prefix, the way amounts are typed into claim fields
_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """Coerce to a number; anything unparseable becomes 0."""
    if is_number(value):
        return value
    if isinstance(value, str):
        match = _NUMBER_PREFIX.match(value.replace("$", "").replace(",", ""))
        if not match:
            return 0
        parsed = float(match.group(0))
        return 0 if math.isnan(parsed) else parsed
    if isinstance(value, datetime):
        return _epoch_ms(value)
    if isinstance(value, date):
        return _epoch_ms(datetime(value.year, value.month, value.day))
    return 0


def to_string(value: Any) -> str:
    """Coerce to a string for text operators."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(to_string(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, default=str)
    return str(value)


def to_date(value: Any) -> datetime | None:
    """Coerce to a timezone-aware datetime, or None."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if is_number(value):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        return parse_flexible_date(value)
    return None


def _epoch_ms(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH).total_seconds() * 1000
