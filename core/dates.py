# -*- coding: utf-8 -*-

from __future__ import annotations

import datetime as dt
import re
from typing import Iterator, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from domain.errors import InvalidInput

DayInput = Union[str, dt.date, dt.datetime]

MIN_DAY = dt.date(1970, 1, 1)
MAX_DAY = dt.date(2100, 12, 31)

_DATE_ONLY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


class Clock:
    """
    Source of "now" in the deployment's reference timezone.
    Services never read the wall clock themselves; they ask a Clock.
    """

    def __init__(self, tz: Optional[dt.tzinfo] = None):
        self.tz = tz or dt.timezone.utc

    @classmethod
    def from_name(cls, tz_name: str) -> "Clock":
        try:
            return cls(ZoneInfo(tz_name))
        except (ZoneInfoNotFoundError, ValueError):
            raise InvalidInput(f"Unknown timezone: {tz_name}")

    def now(self) -> dt.datetime:
        return dt.datetime.now(self.tz)

    def today(self) -> dt.date:
        return self.now().date()


class FixedClock(Clock):
    """Clock pinned to one instant. Naive instants are read as reference-tz local time."""

    def __init__(self, at: dt.datetime, tz: Optional[dt.tzinfo] = None):
        super().__init__(tz)
        if at.tzinfo is None:
            at = at.replace(tzinfo=self.tz)
        self._at = at.astimezone(self.tz)

    def now(self) -> dt.datetime:
        return self._at

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self._at = self._at + dt.timedelta(days=days, hours=hours)


def _local_day(ts: dt.datetime, tz: dt.tzinfo) -> dt.date:
    # naive timestamps are already local wall time
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(tz).date()


def normalize_day(value: DayInput, tz: Optional[dt.tzinfo] = None) -> dt.date:
    """
    Map any accepted date input onto its local calendar day.

    - "YYYY-MM-DD" is built straight from its components (never parsed as
      UTC midnight).
    - A full ISO-8601 timestamp is moved into `tz` (when it carries an
      offset) and truncated to its day.
    - date / datetime objects are accepted as-is, with the same rules.
    """
    tz = tz or dt.timezone.utc

    if isinstance(value, dt.datetime):
        day = _local_day(value, tz)
    elif isinstance(value, dt.date):
        day = value
    elif isinstance(value, str):
        s = value.strip()
        m = _DATE_ONLY_RE.match(s)
        try:
            if m:
                day = dt.date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
            else:
                day = _local_day(dt.datetime.fromisoformat(s), tz)
        except (ValueError, OverflowError):
            raise InvalidInput("Invalid date format")
    else:
        raise InvalidInput("Invalid date format")

    if day < MIN_DAY or day > MAX_DAY:
        raise InvalidInput("Date must be between 1970 and 2100")
    return day


def day_key(day: dt.date) -> str:
    return day.isoformat()


def iter_days(start: dt.date, end: dt.date) -> Iterator[dt.date]:
    cur = start
    while cur <= end:
        yield cur
        cur += dt.timedelta(days=1)
