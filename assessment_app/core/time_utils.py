"""Time helpers shared by the session engine and result formatting."""

from __future__ import annotations

from datetime import datetime, timezone
import math


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds elapsed from ``start`` to ``end`` (floored, may be negative)."""
    return math.floor((end - start).total_seconds())


def format_duration(seconds: int) -> str:
    """Render a duration as ``"3m 5s"`` or ``"1h 2m 3s"``."""
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"
