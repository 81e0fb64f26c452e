# src/tickler/tasks/time_resolver.py

"""
Time text -> absolute instant in the configured timezone.

Accepted forms, tried in this order:
- "HH:MM"             today at that time; rolls forward one day if not after now
- "DD/MM/YYYY HH:MM"  absolute
- "YYYY-MM-DD HH:MM"  absolute

Pure: the result depends only on (text, now, min_year). The only exception raised
for bad input is TimeParseError. A wall time skipped by a DST change resolves to
the instant right after the gap (02:30 on a spring-forward day becomes 03:30).
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

from ..core.clock import as_utc, normalize_wall_time
from ..core.errors import TimeParseError

DEFAULT_MIN_YEAR = 2024

_TIME_ONLY = re.compile(r"(\d{1,2}):(\d{2})")
_DMY = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4}) (\d{1,2}):(\d{2})")
_YMD = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2}) (\d{1,2}):(\d{2})")

# Used by the command parser to split "add <description> <time>" without a '|'.
TRAILING_TIME_REGEX = re.compile(
    r"^(?P<desc>.+?)\s+(?P<time>\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}"
    r"|\d{4}-\d{1,2}-\d{1,2}\s+\d{1,2}:\d{2}"
    r"|\d{1,2}:\d{2})$"
)

FORMATS_HELP = "HH:MM (today), DD/MM/YYYY HH:MM or YYYY-MM-DD HH:MM"


def _check_clock(hour: int, minute: int) -> time:
    if not 0 <= hour <= 23:
        raise TimeParseError(f"Hour must be 0-23, got {hour}.")
    if not 0 <= minute <= 59:
        raise TimeParseError(f"Minute must be 0-59, got {minute}.")
    return time(hour, minute)


def _check_date(year: int, month: int, day: int, *, min_year: int) -> date:
    if year < min_year:
        raise TimeParseError(f"Year must be {min_year} or later, got {year}.")
    if not 1 <= month <= 12:
        raise TimeParseError(f"Month must be 1-12, got {month}.")
    if not 1 <= day <= 31:
        raise TimeParseError(f"Day must be 1-31, got {day}.")
    try:
        return date(year, month, day)
    except ValueError:
        raise TimeParseError(f"{year:04d}-{month:02d}-{day:02d} is not a calendar date.") from None


def resolve_time(text: str, now: datetime, *, min_year: int = DEFAULT_MIN_YEAR) -> datetime:
    """
    Resolve `text` against `now` (timezone-aware) and return an aware datetime
    in now's timezone.

    Absolute forms are returned even if they lie in the past; rejecting those is
    the caller's decision (see task_api.add_task).
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    tz = now.tzinfo
    raw = " ".join((text or "").split())
    if not raw:
        raise TimeParseError(f"Missing time. Use {FORMATS_HELP}.")

    m = _TIME_ONLY.fullmatch(raw)
    if m:
        at = _check_clock(int(m.group(1)), int(m.group(2)))
        today = now.date()
        candidate = normalize_wall_time(datetime.combine(today, at, tzinfo=tz))
        if as_utc(candidate) <= as_utc(now):
            candidate = normalize_wall_time(datetime.combine(today + timedelta(days=1), at, tzinfo=tz))
        return candidate

    m = _DMY.fullmatch(raw)
    if m:
        day, month, year, hour, minute = (int(g) for g in m.groups())
        at = _check_clock(hour, minute)
        return normalize_wall_time(
            datetime.combine(_check_date(year, month, day, min_year=min_year), at, tzinfo=tz)
        )

    m = _YMD.fullmatch(raw)
    if m:
        year, month, day, hour, minute = (int(g) for g in m.groups())
        at = _check_clock(hour, minute)
        return normalize_wall_time(
            datetime.combine(_check_date(year, month, day, min_year=min_year), at, tzinfo=tz)
        )

    raise TimeParseError(f"Unrecognised time {raw!r}. Use {FORMATS_HELP}.")
