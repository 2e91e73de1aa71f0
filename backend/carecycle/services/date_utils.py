"""
Date and interval helpers shared by the scheduling services.

All helpers work at calendar-day granularity unless named otherwise.
Parsing helpers never raise; they return None (or the fallback) instead.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union
import logging

import pytz

from carecycle.config import config

logger = logging.getLogger("service.date_utils")

DateLike = Union[date, datetime, str, None]

MIN_YEAR = 1900
MAX_YEAR = 2100


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.utcnow()


def today(tz_name: Optional[str] = None) -> date:
    """Calendar date in the clinic time zone."""
    tz = pytz.timezone(tz_name or config.CLINIC_TIMEZONE)
    return datetime.now(tz).date()


def safe_parse_date(value: DateLike) -> Optional[date]:
    """Parse a date-like value to a date, or None if it is unusable.

    Accepts date, datetime, 'YYYY-MM-DD' and full ISO timestamps.
    Years outside 1900-2100 are treated as garbage.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                parsed = date.fromisoformat(text)
            else:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            logger.debug(f"Unparseable date value: {value!r}")
            return None
    else:
        return None

    if parsed.year < MIN_YEAR or parsed.year > MAX_YEAR:
        return None
    return parsed


def safe_format_date(
    value: DateLike,
    fmt: str = "%Y-%m-%d",
    fallback: str = "No date",
) -> str:
    """Format a date-like value, returning fallback when it cannot be parsed."""
    parsed = safe_parse_date(value)
    if parsed is None:
        return fallback
    return parsed.strftime(fmt)


def format_date_for_db(value: date) -> str:
    """YYYY-MM-DD string for storage and API payloads."""
    return value.strftime("%Y-%m-%d")


def weeks_to_days(weeks: int) -> int:
    return weeks * 7


def days_to_weeks(days: int) -> int:
    """Whole weeks in a day count (floored)."""
    return days // 7


def add_weeks(value: DateLike, weeks: int) -> Optional[date]:
    """Add whole weeks to a date-like value; None if the value is unusable."""
    parsed = safe_parse_date(value)
    if parsed is None:
        return None
    return parsed + timedelta(days=weeks_to_days(weeks))


def days_between(start: date, end: date) -> int:
    """Signed day difference end - start."""
    return (end - start).days


def whole_weeks_between(start: datetime, end: datetime) -> int:
    """Whole weeks elapsed from start to end, floored, never negative."""
    if end <= start:
        return 0
    return (end - start).days // 7


class SystemClock:
    """Wall clock used by the lifecycle services; tests substitute a fixed one."""

    def now(self) -> datetime:
        return utc_now()

    def today(self) -> date:
        return today()
