"""
Temporal aggregation of timer sessions.

Sessions are bucketed by the UTC calendar date of their ``start_time``. A
session that is still running has no duration yet, so it counts as zero in
every total until it is stopped.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
import uuid

from timetracker.exceptions import ValidationError
from timetracker.models.models import TimerSession
from timetracker.repositories.session_store import SessionStore

DATE_FORMAT = "%Y-%m-%d"
END_OF_DAY = time(23, 59, 59, 999000)


@dataclass
class DailyStats:
    date: str
    total_duration: int = 0
    sessions: List[TimerSession] = field(default_factory=list)

    def add(self, session: TimerSession) -> None:
        self.total_duration += session.duration or 0
        self.sessions.append(session)


def parse_date(value: Optional[str], name: str = "date") -> date:
    """Parse a ``YYYY-MM-DD`` string, raising ValidationError on bad input."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} is required (YYYY-MM-DD)")
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid {name}: {value!r}, expected YYYY-MM-DD")


def range_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """Instants ``[start 00:00:00.000, end 23:59:59.999]`` in UTC."""
    return datetime.combine(start, time.min), datetime.combine(end, END_OF_DAY)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    return range_bounds(day, day)


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """First instant of the month through the last millisecond of its last day."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}, expected 1-12")
    if not 1 <= year <= 9999:
        raise ValidationError(f"Invalid year: {year}")
    last_day = calendar.monthrange(year, month)[1]
    return range_bounds(date(year, month, 1), date(year, month, last_day))


def bucket_key(start_time: datetime) -> str:
    """UTC calendar date of a session start, as ``YYYY-MM-DD``."""
    return start_time.strftime(DATE_FORMAT)


def total_duration(sessions: Iterable[TimerSession]) -> int:
    return sum(s.duration or 0 for s in sessions)


def bucket_sessions(sessions: Iterable[TimerSession]) -> Dict[str, DailyStats]:
    """Group sessions into per-day stats, keeping the input order within each day."""
    buckets: Dict[str, DailyStats] = {}
    for session in sessions:
        key = bucket_key(session.start_time)
        if key not in buckets:
            buckets[key] = DailyStats(date=key)
        buckets[key].add(session)
    return buckets


def iter_dates(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


class TemporalAggregator:
    """Date-bounded session queries for one store."""

    def __init__(self, store: SessionStore):
        self.store = store

    def daily_sessions(self, user_id: uuid.UUID, day: date) -> DailyStats:
        start, end = day_bounds(day)
        sessions = self.store.find_by_user_in_range(user_id, start, end)
        return DailyStats(
            date=day.strftime(DATE_FORMAT),
            total_duration=total_duration(sessions),
            sessions=sessions
        )

    def range_sessions(self, user_id: uuid.UUID, start: date, end: date) -> List[TimerSession]:
        if start > end:
            raise ValidationError("start must not be after end")
        lower, upper = range_bounds(start, end)
        return self.store.find_by_user_in_range(user_id, lower, upper)

    def monthly_buckets(self, user_id: uuid.UUID, year: int, month: int) -> Dict[str, DailyStats]:
        start, end = month_bounds(year, month)
        sessions = self.store.find_by_user_in_range(user_id, start, end)
        return bucket_sessions(sessions)
