"""Time helpers: timezone-aware "now" and long-form calendar dates."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def parse_iso_date(value: str) -> Optional[date]:
    """Parse an ISO-8601 date or datetime string; ``None`` if unparseable.

    Accepts a trailing ``Z`` (UTC designator) as produced by JavaScript
    ``toISOString()``.
    """
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def format_long_date(d: date) -> str:
    """Format a date as e.g. ``"October 16, 2026"``."""
    return f"{d:%B} {d.day}, {d.year}"
