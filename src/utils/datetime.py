# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Timestamp and academic year helpers.

Documents store timestamps as ISO 8601 UTC strings. In memory every
datetime is timezone-aware UTC; naive values read back from storage are
taken to be UTC.

Usage:
    from src.utils.datetime import utc_now_iso, current_academic_year

    document["createdAt"] = utc_now_iso()
    document["anneeScolaire"] = current_academic_year()
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize a datetime to aware UTC.

    Naive values are tagged as UTC, aware ones are converted. None
    passes through.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime | None) -> str | None:
    """Render a datetime as an ISO 8601 UTC string, or None."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def parse_iso(iso_string: str | None) -> datetime | None:
    """Parse a stored ISO 8601 string, accepting a trailing ``Z``.

    Args:
        iso_string: Value read from a document, or None.

    Returns:
        Aware UTC datetime, or None when the input is None.
    """
    if iso_string is None:
        return None
    return ensure_utc(datetime.fromisoformat(iso_string.replace("Z", "+00:00")))


def utc_now_iso() -> str:
    """Current UTC time formatted for storage in a document."""
    return utc_now().isoformat()


def current_academic_year(today: date | None = None) -> str:
    """Get the academic year label for a given day.

    The label always starts at the calendar year of ``today``, so
    every activation in 2025 targets "2025-2026".

    Args:
        today: Reference day. Defaults to the current UTC date.

    Returns:
        Academic year label such as "2025-2026".

    Example:
        >>> current_academic_year(date(2025, 10, 3))
        '2025-2026'
    """
    year = (today or utc_now().date()).year
    return f"{year}-{year + 1}"
