"""Date coercion shared by the Date columns and the client due-date helpers."""

from __future__ import annotations

from datetime import date, datetime, timezone


def coerce_date(value: object) -> date | None:
    """Turn a date, datetime or ISO string into a ``date``; anything else is None."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    raw = value.strip()
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        return None
