"""Wall-clock abstraction so expiry and dwell checks can be driven in tests."""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def calendar_day(moment: datetime, zone: tzinfo) -> str:
    """ISO date of ``moment`` in ``zone``; link counters reset when it changes."""
    if moment.tzinfo is None or moment.tzinfo.utcoffset(moment) is None:
        moment = moment.replace(tzinfo=timezone.utc)
    day: date = moment.astimezone(zone).date()
    return day.isoformat()
