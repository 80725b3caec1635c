"""
Timestamp helpers shared by the reminder features
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

# Clock skew tolerated before a reminder time counts as being in the past
STALE_GRACE = timedelta(seconds=60)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (trailing Z allowed) into an aware UTC datetime, or None"""
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value or "").strip()
        if not raw:
            return None
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_stale(moment: datetime, now: datetime) -> bool:
    return moment < now - STALE_GRACE


def clamp_limit(value: Any, default: int = 5, lower: int = 1, upper: int = 10) -> int:
    """Coerce a client-supplied poll limit into [lower, upper]"""
    try:
        requested = int(float(value))
    except (TypeError, ValueError, OverflowError):
        requested = default
    return max(lower, min(upper, requested))
