"""
Business-day helpers.

Due dates are calendar dates in the business timezone (UTC+5:30 by default).
Timestamps (``paid_at``, ``created_at``) are stored as naive UTC datetimes.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta

from microfin.core.config import settings


def business_offset() -> timedelta:
    return timedelta(minutes=settings.BUSINESS_UTC_OFFSET_MINUTES)


def utcnow() -> datetime:
    """Current time as naive UTC"""
    return datetime.utcnow()


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an incoming timestamp to naive UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def business_today(now: Optional[datetime] = None) -> date:
    """Start-of-day date in the business timezone"""
    now = now or utcnow()
    return (now + business_offset()).date()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Naive UTC ``[start, end)`` covering one business day"""
    start = datetime.combine(day, datetime.min.time()) - business_offset()
    return start, start + timedelta(days=1)


def month_bounds(day: date) -> Tuple[datetime, datetime]:
    """Naive UTC ``[start, end)`` covering the business month containing ``day``"""
    first = datetime.combine(day.replace(day=1), datetime.min.time())
    return first - business_offset(), first + relativedelta(months=1) - business_offset()
