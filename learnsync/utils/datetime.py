# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for learnsync.

All timestamps written to the local store and reported in results are
timezone-aware UTC.

Usage:
------
    from learnsync.utils.datetime import utc_now

    # For SQLAlchemy model defaults
    synced_at: Mapped[datetime] = mapped_column(default=utc_now)
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.

    Example:
        >>> now = utc_now()
        >>> now.tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
          (SQLite hands back naive datetimes)
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format.

    Returns:
        ISO 8601 formatted string or None.
    """
    if dt is None:
        return None

    dt_utc = ensure_utc(dt)
    return dt_utc.isoformat()


def seconds_to_human(seconds: float) -> str:
    """Convert seconds to human-readable duration.

    Args:
        seconds: Duration in seconds.

    Returns:
        Human-readable string like "2m 5s" or "850ms".
    """
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"

    whole = int(seconds)
    if whole < 60:
        return f"{whole}s"

    minutes, remaining_seconds = divmod(whole, 60)
    if remaining_seconds > 0:
        return f"{minutes}m {remaining_seconds}s"
    return f"{minutes}m"

