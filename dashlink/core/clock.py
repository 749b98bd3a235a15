"""Server clock helpers.

SQLite drops tzinfo on round-trip, so every timestamp the server stores is a
naive UTC datetime.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_millis(value: datetime | None) -> int:
    """Naive-UTC datetime to unix milliseconds (0 for None)."""
    if value is None:
        return 0
    return int(value.replace(tzinfo=timezone.utc).timestamp() * 1000)
