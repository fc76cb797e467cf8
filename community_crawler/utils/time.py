from __future__ import annotations

from datetime import UTC, datetime


def now_utc() -> datetime:
    """Return timezone-aware UTC timestamp."""
    return datetime.now(tz=UTC)


def iso_utc(value: datetime | None = None) -> str:
    """ISO-8601 string with millisecond precision and a ``Z`` suffix."""
    value = value or now_utc()
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
