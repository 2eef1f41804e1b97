"""
Time helpers. Everything is stored as naive UTC so values round-trip through
SQLite unchanged and day boundaries are UTC midnights.
"""
from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the half-open [start, end) window covering a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)
