# tenancy/domain/dates.py
from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Any, Optional

from .errors import ValidationError

# Average Gregorian month length, used only to classify contract duration.
DAYS_PER_MONTH = 30.44


def as_date(v: Any) -> Optional[date]:
    """
    Reduce anything date-like to a calendar date.

    - None -> None
    - datetime -> its date part (time of day and tz are dropped)
    - date -> itself
    - ISO string ("2025-06-30" or "2025-06-30T10:00:00") -> date
    """
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    s = str(v).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        raise ValidationError(f"not an ISO-8601 date: {s!r}")


def require_date(v: Any, *, field: str) -> date:
    d = as_date(v)
    if d is None:
        raise ValidationError(f"{field} is required")
    return d


def whole_days_between(start: Any, end: Any) -> int:
    """
    Whole calendar days from `start` to `end` (negative when end is earlier).

    Both sides are reduced to calendar dates first, so a request made late in
    the day counts the same as one made at midnight.
    """
    s = require_date(start, field="start")
    e = require_date(end, field="end")
    return (e - s).days


def add_months(d: date, months: int) -> date:
    """Calendar month arithmetic; the day is clamped to the target month's end."""
    idx = d.month - 1 + int(months)
    y = d.year + idx // 12
    m = idx % 12 + 1
    last_day = calendar.monthrange(y, m)[1]
    return date(y, m, min(d.day, last_day))


def months_between(start: date, end: date) -> int:
    return int(round((end - start).days / DAYS_PER_MONTH))
