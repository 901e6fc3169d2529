"""Built-in date and aggregation helpers.

These are exposed to action parameter templating and custom handlers.
``BUILTIN_FUNCTIONS`` maps the names rule authors use to the Python helpers.
"""
from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any, Callable

from .coercion import is_number, to_date

DateLike = datetime | date | str | int | float

SECONDS_PER_DAY = 86400


def now() -> datetime:
    """Current UTC time."""
    return datetime.now(timezone.utc)


def _resolve(value: DateLike, name: str = "date") -> datetime:
    resolved = to_date(value)
    if resolved is None:
        raise ValueError(f"Invalid {name}: {value!r}")
    return resolved


def _reference(reference: datetime | None) -> datetime:
    if reference is None:
        return now()
    return _resolve(reference, "reference")


def days_since(value: DateLike, reference: datetime | None = None) -> int:
    """Whole days elapsed from ``value`` to ``reference`` (floor)."""
    elapsed = _reference(reference) - _resolve(value)
    return math.floor(elapsed.total_seconds() / SECONDS_PER_DAY)


def days_until(value: DateLike, reference: datetime | None = None) -> int:
    """Days remaining from ``reference`` to ``value`` (ceiling)."""
    remaining = _resolve(value) - _reference(reference)
    return math.ceil(remaining.total_seconds() / SECONDS_PER_DAY)


def _count_business_days(start: datetime, end: datetime) -> int:
    # Steps one calendar day at a time from start while strictly before end
    if start >= end:
        return 0
    steps = math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)
    full_weeks, remainder = divmod(steps, 7)
    count = full_weeks * 5
    first_weekday = start.weekday()
    for offset in range(remainder):
        if (first_weekday + offset) % 7 < 5:
            count += 1
    return count


def business_days_since(value: DateLike, reference: datetime | None = None) -> int:
    """Weekdays between ``value`` and ``reference``, weekends excluded."""
    return _count_business_days(_resolve(value), _reference(reference))


def business_days_until(value: DateLike, reference: datetime | None = None) -> int:
    """Weekdays between ``reference`` and ``value``, weekends excluded."""
    return _count_business_days(_reference(reference), _resolve(value))


def sum_values(values: list[Any]) -> float:
    return sum(v for v in values if is_number(v))


def count_values(value: Any) -> int:
    """Number of list items or mapping keys; 0 for anything else."""
    if isinstance(value, (list, tuple, dict)):
        return len(value)
    return 0


def average(values: list[Any]) -> float:
    if not values:
        return 0
    return sum_values(values) / len(values)


def min_value(values: list[float]) -> float:
    if not values:
        return 0
    return min(values)


def max_value(values: list[float]) -> float:
    if not values:
        return 0
    return max(values)


def is_date_in_range(value: DateLike, start: DateLike, end: DateLike) -> bool:
    target = _resolve(value)
    return _resolve(start, "start date") <= target <= _resolve(end, "end date")


def format_date(value: DateLike, fmt: str = "YYYY-MM-DD") -> str:
    """Render a date using ``YYYY``/``MM``/``DD`` tokens (first occurrence each)."""
    resolved = _resolve(value)
    return (
        fmt.replace("YYYY", f"{resolved.year:04d}", 1)
        .replace("MM", f"{resolved.month:02d}", 1)
        .replace("DD", f"{resolved.day:02d}", 1)
    )


BUILTIN_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "now": now,
    "daysSince": days_since,
    "daysUntil": days_until,
    "businessDaysSince": business_days_since,
    "businessDaysUntil": business_days_until,
    "sum": sum_values,
    "count": count_values,
    "average": average,
    "min": min_value,
    "max": max_value,
    "isDateInRange": is_date_in_range,
    "formatDate": format_date,
}
