from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Make a naive datetime timezone-aware (UTC). Already-aware datetimes pass through."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def hours_between(a: Optional[datetime], b: Optional[datetime]) -> Optional[float]:
    """Absolute distance in hours, or None when either side is unknown."""
    if a is None or b is None:
        return None
    return abs((ensure_utc(a) - ensure_utc(b)).total_seconds()) / 3600.0
