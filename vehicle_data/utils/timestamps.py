"""
Timestamp helpers.

Stored timestamps are ISO 8601 strings. Values written by the web dashboard
end in "Z"; values written here carry an explicit "+00:00" offset. Naive
values are treated as UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Parse an ISO 8601 timestamp into an aware UTC datetime.

    Returns:
        The parsed datetime, or None for empty or unparseable values
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_duration(start: datetime, end: datetime) -> str:
    """
    Format the time between two datetimes as "{days}d {hours}h" or "{hours}h".

    Negative spans are reported as "0h".
    """
    total_hours = max(0, int((end - start).total_seconds() // 3600))
    days, hours = divmod(total_hours, 24)
    if days > 0:
        return f"{days}d {hours}h"
    return f"{hours}h"
