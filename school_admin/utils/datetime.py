# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for school_admin.

All timestamps are stored in UTC (PostgreSQL TIMESTAMPTZ) and all Python
datetimes handled by the services are timezone-aware.

Usage:
    from school_admin.utils.datetime import utc_now

    now = utc_now()
"""

from datetime import datetime, timezone


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
        Timezone-aware UTC datetime or None. Naive values are assumed UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def is_within_window(
    moment: datetime,
    start: datetime | None,
    end: datetime | None,
) -> bool:
    """Check whether a moment falls inside an inclusive date window.

    Missing bounds are treated as open.

    Args:
        moment: The instant to check.
        start: Window start, or None.
        end: Window end, or None.

    Returns:
        True if start <= moment <= end.
    """
    moment = ensure_utc(moment)
    if start is not None and moment < ensure_utc(start):
        return False
    if end is not None and moment > ensure_utc(end):
        return False
    return True
