"""UTC calendar helpers shared by the analytics services"""
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional, Tuple

def to_naive_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed to be UTC already"""
    if dt.tzinfo is not None and dt.tzinfo.utcoffset(dt) is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(tzinfo=None)

def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 export timestamp into naive UTC. Raises ValueError."""
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")
    return to_naive_utc(datetime.fromisoformat(value.strip()))

def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Format as e.g. 2024-06-15T10:00:00.000Z"""
    if dt is None:
        return None
    return to_naive_utc(dt).isoformat(timespec='milliseconds') + 'Z'

def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)

def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)

def days_in_year(year: int) -> int:
    return 366 if is_leap_year(year) else 365

def year_bounds(year: int) -> Tuple[datetime, datetime]:
    """Half-open [Jan 1 of year, Jan 1 of year + 1)"""
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)

def day_bounds(day: date) -> Tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)

def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """Move a (year, month) pair by delta months, rolling over year boundaries"""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1

def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    next_year, next_month = shift_month(year, month, 1)
    return datetime(year, month, 1), datetime(next_year, next_month, 1)

def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"

def years_before(day: date, years: int) -> date:
    """
    Same calendar date `years` earlier.
    Feb 29 maps to Mar 1 when the target year has no leap day.
    """
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return date(day.year - years, 3, 1)

def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start through end inclusive"""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)

def as_date(value) -> date:
    """Normalize a DATE() result (date object on PostgreSQL, string on SQLite)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
