# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for Upskill.

All timestamps are stored in UTC and all Python datetimes are
timezone-aware, so naive/aware comparisons never happen.

Usage:
------
    from upskill.utils.datetime import utc_now

    # For SQLAlchemy model defaults
    created_at = mapped_column(DateTime(timezone=True), default=utc_now)
"""

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
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
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def start_of_day(dt: datetime) -> datetime:
    """Get midnight (00:00:00.000) of the given day in UTC."""
    return ensure_utc(dt).replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(dt: datetime) -> datetime:
    """Get the last millisecond (23:59:59.999) of the given day in UTC."""
    return ensure_utc(dt).replace(hour=23, minute=59, second=59, microsecond=999000)


def days_ago(days: int) -> datetime:
    """Get a datetime N days ago from now.

    Args:
        days: Number of days to go back.

    Returns:
        Timezone-aware UTC datetime.
    """
    return utc_now() - timedelta(days=days)


def days_between(start: datetime, end: datetime) -> int:
    """Count whole days elapsed between two datetimes.

    Args:
        start: Earlier datetime.
        end: Later datetime.

    Returns:
        Number of days, at least 0.
    """
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // 86400)


def format_day(value: datetime | date) -> str:
    """Format a datetime or date as a YYYY-MM-DD string (UTC)."""
    if isinstance(value, datetime):
        value = ensure_utc(value).date()
    return value.isoformat()


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format.

    Returns:
        ISO 8601 formatted string or None.
    """
    if dt is None:
        return None

    return ensure_utc(dt).isoformat()


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string.

    Args:
        iso_string: ISO 8601 formatted string.

    Returns:
        Timezone-aware UTC datetime or None.
    """
    if iso_string is None:
        return None

    dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    return ensure_utc(dt)


# Aliases for convenience
now = utc_now
