"""
calendar_utils.py — Challenge-local calendar helpers
Every YYYY-MM-DD string in the system (challenge start/end, log dates) is read
and written through these functions, against CHALLENGE_TIMEZONE.
"""

import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from config import CHALLENGE_TIMEZONE

DAY_SECONDS = 24 * 60 * 60
DATE_KEY = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)


def challenge_tz() -> ZoneInfo:
    return ZoneInfo(CHALLENGE_TIMEZONE)


def local_now() -> datetime:
    """Current instant in the challenge timezone (FastAPI dependency, override in tests)."""
    return datetime.now(challenge_tz())


def date_key(d: date | datetime) -> str:
    """YYYY-MM-DD from the local calendar fields, never via a UTC conversion."""
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_local_date(s: str) -> date:
    """Inverse of date_key. Raises ValueError on anything but YYYY-MM-DD."""
    if not isinstance(s, str) or not DATE_KEY.fullmatch(s):
        raise ValueError(f"Invalid date key: {s!r}")
    y, m, d = (int(p) for p in s.split("-"))
    return date(y, m, d)


def start_of_day(d: date, tz=None) -> datetime:
    return datetime.combine(d, time.min, tzinfo=tz or challenge_tz())


def end_of_day(d: date, tz=None) -> datetime:
    """23:59:59.999 local, matching millisecond clocks."""
    return datetime.combine(d, time(23, 59, 59, 999000), tzinfo=tz or challenge_tz())


def local_day(instant: datetime, tz=None) -> date:
    """Calendar day of an instant in the challenge timezone."""
    tz = tz or challenge_tz()
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=tz)
    return instant.astimezone(tz).date()


def days_in_range(start: date, end: date):
    """Inclusive enumeration of calendar days; empty when end < start."""
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def count_days_inclusive(start: date, end: date) -> int:
    return max(0, (end - start).days + 1)
