"""Retention window arithmetic.

A record is inside a window of N days iff its timestamp is at or after
``now - N * 24h``. The lower edge is inclusive.
"""

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..models.change_models import ChangeEventRecord


_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_days(value: Any, default: int) -> int:
    """Read a day count the lenient way clients send it.

    The leading integer of the value is used ("15", 15, "15days"); anything
    missing, unparseable, zero or negative means `default`.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return default
        days = int(value)
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return default
        days = int(match.group(1))
    return days if days > 0 else default


def _as_aware(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def compute_cutoff(now: datetime, window_days: Optional[float]) -> Optional[datetime]:
    """Return the oldest timestamp still inside the window.

    None means the window has no lower bound (window_days is None, infinite,
    NaN, or reaches past the representable datetime range).
    """
    if window_days is None or not math.isfinite(window_days):
        return None
    try:
        return _as_aware(now) - timedelta(days=window_days)
    except OverflowError:
        return None


def is_within_window(
    record: ChangeEventRecord,
    now: datetime,
    window_days: Optional[float],
) -> bool:
    cutoff = compute_cutoff(now, window_days)
    if cutoff is None:
        return True
    return record.timestamp >= cutoff
