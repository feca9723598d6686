"""Date helpers for claim documents.

Claims arrive from several intake channels, so dates may be ISO strings,
US-style strings, compact strings, timestamps, or already-parsed objects.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

# Years outside this range are treated as data-entry errors
MIN_VALID_YEAR = 1900
MAX_VALID_YEAR = 2100

DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%Y%m%d",
)


def _in_range(value: datetime) -> bool:
    return MIN_VALID_YEAR <= value.year <= MAX_VALID_YEAR


def parse_flexible_date(date_str: str | None) -> datetime | None:
    """Parse a claim date string.

    Accepts ``2024-01-15``, ``01/15/2024``, ``20240115`` and ISO
    timestamps such as ``2024-01-15T08:30:00Z`` (returned naive).
    Impossible dates like ``2024-02-30`` and years outside 1900-2100
    yield None.

        >>> parse_flexible_date("01/15/2024")
        datetime.datetime(2024, 1, 15, 0, 0)
    """
    if not date_str:
        return None

    text = date_str.strip()
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if _in_range(parsed):
            return parsed

    if "T" in text:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        if _in_range(parsed):
            return parsed.replace(tzinfo=None)

    return None


def coerce_date(value: Any) -> date | None:
    """Convert a date, datetime or date string to a ``date``.

    Returns None for empty or unparseable values.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        parsed = parse_flexible_date(value)
        return parsed.date() if parsed else None
    return None


def days_between(start: Any, end: Any) -> int | None:
    """Whole days from ``start`` to ``end`` (negative if end is earlier)."""
    start_date = coerce_date(start)
    end_date = coerce_date(end)
    if start_date is None or end_date is None:
        return None
    return (end_date - start_date).days
