from datetime import datetime, timezone, timedelta
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Current time as naive UTC (the storage convention for all timestamps)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC. Naive values are assumed UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day(now: datetime, tz_name: str = "UTC") -> datetime:
    """
    Midnight of ``now``'s calendar day in ``tz_name``, as naive UTC.

    Args:
        now: Naive UTC reference time
        tz_name: IANA timezone defining the day boundary
    """
    local = now.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name))
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return to_naive_utc(midnight)


def week_ago(now: datetime) -> datetime:
    return now - timedelta(days=7)
