"""
Standardized Date/Time Handling Utilities

CRITICAL RULES:
- The engine never reads the system clock inside rules; callers pass `now`
- Calendar-day keys are computed in the configured TIMEZONE
- Never mix naive and aware datetimes (naive values are assumed UTC)
"""

import logging
from datetime import datetime, date, time, timedelta, timezone
from zoneinfo import ZoneInfo

from progression.config import TIMEZONE

logger = logging.getLogger(__name__)


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Used as the default injected clock.
    """
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def local_date(value: datetime, tz_name: str = TIMEZONE) -> date:
    """Calendar date of an instant in the configured timezone"""
    return ensure_aware(value).astimezone(ZoneInfo(tz_name)).date()


def day_key(value: datetime | date, tz_name: str = TIMEZONE) -> str:
    """
    Calendar-day key (YYYY-MM-DD)

    Args:
        value: An instant or an already-resolved calendar date
        tz_name: Timezone used to resolve instants

    Returns:
        ISO date string
    """
    if isinstance(value, datetime):
        value = local_date(value, tz_name)
    return value.isoformat()


def iso_week_key(value: datetime | date, tz_name: str = TIMEZONE) -> str:
    """ISO week key, e.g. 2024-W03"""
    if isinstance(value, datetime):
        value = local_date(value, tz_name)
    iso_year, iso_week, _ = value.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def next_local_midnight(value: datetime, tz_name: str = TIMEZONE) -> datetime:
    """Start of the next calendar day in the configured timezone (returned in UTC)"""
    zone = ZoneInfo(tz_name)
    tomorrow = local_date(value, tz_name) + timedelta(days=1)
    return datetime.combine(tomorrow, time.min, tzinfo=zone).astimezone(timezone.utc)


def local_hour(value: datetime, tz_name: str = TIMEZONE) -> int:
    """Hour of day of an instant in the configured timezone"""
    return ensure_aware(value).astimezone(ZoneInfo(tz_name)).hour
