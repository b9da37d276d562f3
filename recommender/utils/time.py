"""
Time helpers: UTC clock, history time windows and day arithmetic.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

# Lengths of the rolling history windows
WINDOW_DAYS = {"week": 7, "month": 30}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def start_of_day(dt: datetime) -> datetime:
    dt = ensure_utc(dt)
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def window_start(window: str, now: datetime) -> Optional[datetime]:
    """
    Lower bound for a history time window.

    today: since UTC midnight; week: last 7 days; month: last 30 days; all: None.
    """
    if window == "all":
        return None
    if window == "today":
        return start_of_day(now)
    if window in WINDOW_DAYS:
        return ensure_utc(now) - timedelta(days=WINDOW_DAYS[window])
    raise ValueError(f"Unknown time window: {window!r}")


def utc_date(dt: datetime) -> date:
    return ensure_utc(dt).date()
