"""Half-open time intervals and wall-clock arithmetic."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


@dataclass(frozen=True)
class Interval:
    """A span [start, end) in local wall-clock time."""

    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


def overlaps(a: Interval, b: Interval) -> bool:
    """Touching intervals (a.end == b.start) do not overlap."""
    return a.start < b.end and b.start < a.end


def add_minutes(instant: datetime, minutes: int) -> datetime:
    return instant + timedelta(minutes=minutes)


def combine(date_value: str, time_value: str) -> datetime:
    """Join a YYYY-MM-DD date and an HH:mm time; raises ValueError if malformed."""
    return datetime.strptime(f"{date_value} {time_value}", f"{DATE_FORMAT} {TIME_FORMAT}")


def window(date_value: str, time_value: str, duration_minutes: int) -> Interval:
    start = combine(date_value, time_value)
    return Interval(start=start, end=add_minutes(start, duration_minutes))


def format_date(instant: datetime) -> str:
    return instant.strftime(DATE_FORMAT)


def format_time(instant: datetime) -> str:
    return instant.strftime(TIME_FORMAT)
