"""Date parsing utilities for workflow rule evaluation."""

from __future__ import annotations

from datetime import datetime, timezone

# Reasonable date bounds for revenue-cycle records
MIN_VALID_YEAR = 1900
MAX_VALID_YEAR = 2100


def parse_flexible_date(date_str: str | None) -> datetime | None:
    """Parse a date or timestamp from the formats seen in claim data.

    Supports the following formats:
    - ISO 8601 date: YYYY-MM-DD (e.g., 2024-01-15)
    - ISO 8601 timestamp: 2024-01-15T08:30:00, 2024-01-15T08:30:00Z,
      2024-01-15T08:30:00.000+02:00
    - US format: MM/DD/YYYY (e.g., 01/15/2024)
    - Compact: YYYYMMDD (e.g., 20240115)

    Validates that:
    - The date is a real calendar date (no Feb 30, etc.)
    - The year is between 1900 and 2100

    Args:
        date_str: Date string to parse, or None

    Returns:
        Timezone-aware datetime (naive inputs are taken as UTC), or None if
        parsing fails or input is None

    Examples:
        >>> parse_flexible_date("2024-01-15")
        datetime.datetime(2024, 1, 15, 0, 0, tzinfo=datetime.timezone.utc)
        >>> parse_flexible_date("01/15/2024")
        datetime.datetime(2024, 1, 15, 0, 0, tzinfo=datetime.timezone.utc)
        >>> parse_flexible_date("2024-01-15T10:00:00Z")
        datetime.datetime(2024, 1, 15, 10, 0, tzinfo=datetime.timezone.utc)
        >>> parse_flexible_date("2024-02-30")  # Invalid date
        None
    """
    if not date_str:
        return None

    text = date_str.strip()
    if not text:
        return None

    parsed = _parse_iso(text)
    if parsed is None:
        formats = [
            "%m/%d/%Y",  # US format
            "%Y%m%d",  # Compact
        ]
        for fmt in formats:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                # strptime raises ValueError for invalid dates like Feb 30
                continue

    if parsed is None:
        return None

    # Validate year is within sensible bounds
    if parsed.year < MIN_VALID_YEAR or parsed.year > MAX_VALID_YEAR:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_iso(text: str) -> datetime | None:
    # Plain 8-digit strings are left for the compact format
    if len(text) < 10 or text[4] != "-":
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
