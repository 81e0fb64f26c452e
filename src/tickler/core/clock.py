# src/tickler/core/clock.py

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def as_utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc)


def elapsed(earlier: datetime, later: datetime) -> timedelta:
    """
    Real time between two aware instants.

    Plain subtraction of datetimes that share one ZoneInfo is wall-clock
    arithmetic and is off by the shift across a DST change.
    """
    return as_utc(later) - as_utc(earlier)


def normalize_wall_time(dt: datetime) -> datetime:
    """Map a wall time that does not exist (DST gap) onto the real instant after the gap."""
    return as_utc(dt).astimezone(dt.tzinfo)


def load_timezone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name; fail fast on typos in configuration."""
    try:
        return ZoneInfo((name or "").strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name!r}") from e


class SystemClock:
    """Wall clock pinned to one timezone, shared by resolver, store and scheduler."""

    def __init__(self, tz: tzinfo) -> None:
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, float(seconds)))
