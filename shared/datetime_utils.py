"""
Date/time helpers — framework-agnostic.

The Mongo client is opened with ``tz_aware=True`` but documents written by
older tooling may still carry naive datetimes, so every comparison goes
through as_utc().
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime (naive values are assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def seconds_until(target: datetime, now: datetime) -> int:
    """Whole seconds from *now* until *target*, rounded up, never negative."""
    delta = (as_utc(target) - as_utc(now)).total_seconds()
    return max(0, math.ceil(delta))
