"""Datetime parsing: lax input -> strict output."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pendulum


def parse_timestamp(value: str | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax timestamp into an aware UTC datetime.

    Accepts what Notion and SQLite hand back:
    - 2024-06-15T12:00:00.000Z
    - 2024-06-15T12:00:00+10:00
    - 2024-06-15 12:00:00
    - 2024-06-15

    Missing timezone defaults to default_tz.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=pendulum.timezone(default_tz))  # type: ignore[arg-type]
        return value.astimezone(timezone.utc)

    parsed = pendulum.parse(value.strip(), tz=default_tz, strict=False)
    if not isinstance(parsed, pendulum.DateTime):
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(
            parsed.year, parsed.month, parsed.day, tz=default_tz  # type: ignore[union-attr]
        )
    return parsed.in_timezone("UTC")  # type: ignore[return-value]


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def format_iso(dt: datetime) -> str:
    """Format datetime as ISO 8601 in UTC, millisecond precision, ``Z`` suffix.

    The fixed width keeps stored values lexicographically ordered.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def expiry_for(created_at: datetime, ttl_seconds: int | None) -> datetime | None:
    """Expiry instant for a TTL; None means the entry never expires."""
    if ttl_seconds is None:
        return None
    return created_at + timedelta(seconds=ttl_seconds)


def seconds_remaining(expires_at: datetime | None, now: datetime) -> int | None:
    """Whole seconds until expiry, floored at zero. None for no expiry."""
    if expires_at is None:
        return None
    return max(0, round((expires_at - now).total_seconds()))
