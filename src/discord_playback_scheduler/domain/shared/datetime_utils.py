"""Date/time helpers.

All timestamps in the domain are timezone-aware UTC datetimes.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return a timezone-aware datetime in UTC."""
    return datetime.now(UTC)


def discord_timestamp(dt: datetime, style: str = "R") -> str:
    """Discord timestamp markup, e.g. ``<t:1700000000:R>`` for relative time."""
    return f"<t:{int(dt.timestamp())}:{style}>"
