# onboardpro/utils/dates.py
from datetime import datetime, timezone, timedelta, date
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def days_between(start, end) -> Optional[float]:
    """Days elapsed between two dates or datetimes, None when either is missing."""
    if start is None or end is None:
        return None
    if isinstance(start, date) and not isinstance(start, datetime):
        start = datetime.combine(start, datetime.min.time())
    if isinstance(end, date) and not isinstance(end, datetime):
        end = datetime.combine(end, datetime.min.time())
    return (end - start).total_seconds() / 86400


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    """Start of the reporting window for week/month/quarter/year."""
    now = now or utcnow()
    spans = {"week": 7, "month": 30, "quarter": 90, "year": 365}
    return start_of_day(now - timedelta(days=spans.get(period, 30)))
