"""Calendar clock used wherever "today" matters.

Daily logs are keyed by ISO date strings, so every operation that needs the
current date takes a Clock instead of reading the wall clock itself.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from config.settings import settings


class Clock(Protocol):
    def today(self) -> date: ...


class SystemClock:
    """Wall-clock date in the configured timezone (UTC by default)."""

    def __init__(self, tz: str = "UTC"):
        self.tz = ZoneInfo(tz)

    def today(self) -> date:
        return datetime.now(self.tz).date()


class FixedClock:
    """Always returns the same date."""

    def __init__(self, fixed: date):
        self.fixed = fixed

    def today(self) -> date:
        return self.fixed


_system_clock: Optional[SystemClock] = None


def get_clock() -> Clock:
    """FastAPI dependency: override in tests with a FixedClock.

    The system clock is built on first use so an unknown APP_TIMEZONE is
    reported by the startup checks rather than at import time.
    """
    global _system_clock
    if _system_clock is None:
        _system_clock = SystemClock(settings.APP_TIMEZONE)
    return _system_clock


def iso(d: date) -> str:
    return d.isoformat()


def long_date(d: date) -> str:
    """Human-readable date, e.g. 'Sunday, October 18, 2026'."""
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"
