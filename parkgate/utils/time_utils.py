# parkgate/utils/time_utils.py
"""Timestamp helpers. Everything is stored as naive UTC, like the DB columns."""

import calendar
from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise a caller-supplied timestamp (aware or naive) to naive UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def add_months(start: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day (Jan 31 + 1 month → Feb 28/29)."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def renewal_window_end(start: datetime, renewal_type: Optional[str]) -> datetime:
    """End of a subscription window. Unknown renewal types default to one year."""
    if renewal_type == "weekly":
        return start + timedelta(days=7)
    if renewal_type == "monthly":
        return add_months(start, 1)
    return add_months(start, 12)
