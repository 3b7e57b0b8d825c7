"""
Calendar-day helpers. Days travel as YYYY-MM-DD strings everywhere.
"""
import re
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from errors import InvalidInput

DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def today() -> date:
    """Server clock, day granularity"""
    return date.today()


def today_str() -> str:
    return today().isoformat()


def utcnow() -> datetime:
    """Naive UTC, matching what the Mongo driver hands back"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_day(value: Optional[str], field: str = "date") -> date:
    """Parse a YYYY-MM-DD string, raising InvalidInput when it is malformed or not a real day"""
    if not value:
        raise InvalidInput(f"{field} required")
    if not DAY_PATTERN.match(value):
        raise InvalidInput("Invalid date format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidInput("Invalid date format. Use YYYY-MM-DD")


def parse_past_day(value: Optional[str], field: str = "startDate") -> date:
    """Like parse_day, but the day may not be after today"""
    day = parse_day(value, field)
    if day > today():
        raise InvalidInput("Start date cannot be in the future")
    return day


def days_in_year(year: int) -> List[str]:
    """Every calendar day of ``year``, Jan 1 through Dec 31"""
    current = date(year, 1, 1)
    days = []
    while current.year == year:
        days.append(current.isoformat())
        # date.max has no successor
        if current.month == 12 and current.day == 31:
            break
        current += timedelta(days=1)
    return days


def days_since(start: Optional[str]) -> Optional[int]:
    if not start:
        return None
    try:
        start_day = date.fromisoformat(start)
    except ValueError:
        return None
    return max(0, (today() - start_day).days)


def days_ago(count: int) -> str:
    return (today() - timedelta(days=count)).isoformat()


def month_ago() -> str:
    current = today()
    year, month = (current.year, current.month - 1) if current.month > 1 else (current.year - 1, 12)
    day = min(current.day, _month_length(year, month))
    return date(year, month, day).isoformat()


def _month_length(year: int, month: int) -> int:
    if month == 12:
        return 31
    return (date(year, month + 1, 1) - timedelta(days=1)).day


def parse_cursor(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        cursor = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidInput("Invalid cursor")
    if cursor.tzinfo is not None:
        cursor = cursor.astimezone(timezone.utc).replace(tzinfo=None)
    return cursor
