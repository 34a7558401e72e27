"""
Core utilities for the Expense Tracker backend.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any


def today() -> date:
    """Current calendar date in UTC."""
    return datetime.now(timezone.utc).date()


def parse_date(value: Any) -> date | None:
    """Coerce a date-like value into a ``date``.

    Accepts ``date``/``datetime`` instances and ISO strings (``YYYY-MM-DD``,
    optionally followed by a time part). Anything else, including blank or
    unparseable text, yields ``None`` so callers can treat it as absent.

    Args:
        value: Raw value from a query string, JSON document or model

    Returns:
        Parsed date, or None when the value cannot be interpreted
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def render_date(value: date) -> str:
    """Render a date the way it is displayed and searched (``YYYY-MM-DD``)."""
    return value.isoformat()
