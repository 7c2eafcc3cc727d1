"""
Match time utilities.

Matches are scheduled from a calendar date (YYYY-MM-DD) and a 24 hour clock
time (HH:MM), both interpreted as UTC, and stored as unix seconds.
"""

import re
from datetime import date, datetime, time, timezone
from typing import Tuple

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_PATTERN = re.compile(r'^\d{2}:\d{2}$')


def parse_date(date_str: str) -> date:
    """
    Parse a YYYY-MM-DD string into a calendar date.

    Raises:
        ValueError: If the format is wrong or the date does not exist
    """
    date_str = (date_str or '').strip()
    if not DATE_PATTERN.match(date_str):
        raise ValueError(f"Invalid date format: {date_str!r}. Use YYYY-MM-DD")
    return date.fromisoformat(date_str)


def parse_time(time_str: str) -> time:
    """
    Parse an HH:MM string on the 24 hour clock.

    Raises:
        ValueError: If the format is wrong or the clock value is out of range
    """
    time_str = (time_str or '').strip()
    if not TIME_PATTERN.match(time_str):
        raise ValueError(f"Invalid time format: {time_str!r}. Use HH:MM")
    hours, minutes = (int(part) for part in time_str.split(':'))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time: {time_str}")
    return time(hours, minutes)


def to_unix(match_date: date, match_time: time) -> int:
    """Combine a date and a clock time as a UTC instant in unix seconds."""
    instant = datetime.combine(match_date, match_time, tzinfo=timezone.utc)
    return int(instant.timestamp())


def split_unix(unix_time: int) -> Tuple[date, time]:
    instant = datetime.fromtimestamp(unix_time, tz=timezone.utc)
    return instant.date(), time(instant.hour, instant.minute)


def unix_to_date_string(unix_time: int) -> str:
    """UTC calendar date of a timestamp, used as the fixture grouping key."""
    return datetime.fromtimestamp(unix_time, tz=timezone.utc).strftime('%Y-%m-%d')


def unix_to_discord_timestamp(unix_time: int) -> str:
    # Discord renders this in each viewer's local timezone
    return f"<t:{unix_time}:f>"
