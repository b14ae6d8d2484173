"""
General helper utilities
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union


def today() -> date:
    return datetime.now(timezone.utc).date()


def days_ago(days: int, reference: Optional[date] = None) -> date:
    """Date `days` days before the reference date (today by default)"""
    return (reference or today()) - timedelta(days=days)


def month_key(value: Union[date, str]) -> str:
    """YYYY-MM key for a date or ISO date string"""
    if isinstance(value, str):
        return value[:7]
    return value.strftime("%Y-%m")


def month_bounds(key: str) -> tuple[date, date]:
    """First day of the month and first day of the following month"""
    year, month = (int(part) for part in key.split("-"))
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def previous_month_key(reference: Optional[date] = None) -> str:
    first = (reference or today()).replace(day=1)
    return month_key(first - timedelta(days=1))


def recent_month_keys(count: int, reference: Optional[date] = None) -> list[str]:
    """The last `count` month keys, oldest first, ending with the reference month"""
    keys = [month_key(reference or today())]
    while len(keys) < count:
        keys.insert(0, previous_month_key(month_bounds(keys[0])[0]))
    return keys


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()
