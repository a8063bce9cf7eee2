import re
from datetime import datetime, timezone
from typing import Any, Optional

from .config import DEFAULT_READINGS_LIMIT, MAX_READINGS_LIMIT

_LEADING_INT = re.compile(r"\s*[+-]?\d+")


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with aware ones"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def clamp_limit(raw: Any, default: int = DEFAULT_READINGS_LIMIT, maximum: int = MAX_READINGS_LIMIT) -> int:
    """Parse a result-count limit.

    Only the leading integer of a string counts, so "5.5" gives 5 and
    "12abc" gives 12. Anything without one, or outside
    (0, maximum], falls back to the default: limit=0 and limit=1500 both yield it.
    """
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        limit = raw
    else:
        match = _LEADING_INT.match(str(raw))
        if match is None:
            return default
        limit = int(match.group())
    if limit <= 0 or limit > maximum:
        return default
    return limit


def mean_of(first: Optional[float], second: Optional[float]) -> Optional[float]:
    """Arithmetic mean of two values; None when either is missing"""
    if first is None or second is None:
        return None
    return (first + second) / 2
