"""Shared utility functions for the claim scrubbing core."""

from .date_parser import coerce_date, days_between, parse_flexible_date
from .locks import KeyedLock

__all__ = ["KeyedLock", "coerce_date", "days_between", "parse_flexible_date"]
