"""Decides whether a cached scan can be reused or the site must be probed again."""

from datetime import datetime, timedelta, timezone
from typing import Optional

STALENESS_WINDOW = timedelta(days=14)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def needs_fresh_probe(previous_scan_at: Optional[datetime], force_requested: bool, now: datetime) -> bool:
    if force_requested:
        return True
    if previous_scan_at is None:
        return True
    return _as_utc(now) - _as_utc(previous_scan_at) >= STALENESS_WINDOW
