# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""UTC datetime helpers.

Closure timestamps (started_at, finished_at, calculated_at, graduated_at,
resolved_at) are always timezone-aware UTC. SQLite hands back naive values,
so anything read from the database goes through ensure_utc() before it is
compared or serialized.
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime. Used as column default."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Return dt as aware UTC; naive values are taken to be UTC already."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def time_since(start: datetime) -> timedelta:
    """Elapsed time since start, e.g. the duration of a closure run."""
    return utc_now() - ensure_utc(start)


def format_iso(dt: datetime | None) -> str | None:
    """ISO 8601 string in UTC, for JSON metadata columns."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
