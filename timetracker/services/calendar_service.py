from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional
import logging
import uuid

from timetracker.models.models import TimerSession
from timetracker.repositories.session_store import SessionStore
from timetracker.services.aggregation import (
    DATE_FORMAT, DailyStats, TemporalAggregator, bucket_key, iter_dates, parse_date
)
from timetracker.services.contributions import (
    ContributionData, ContributionDay, compute_levels, window_max
)
from timetracker.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

CONTRIBUTION_WINDOW_DAYS = 365


class CalendarService:
    """Daily, range, monthly and contribution-graph views over a user's sessions."""

    def __init__(self, store: SessionStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock
        self.aggregator = TemporalAggregator(store)

    def get_daily(self, user_id: uuid.UUID, date_str: Optional[str]) -> DailyStats:
        day = parse_date(date_str)
        return self.aggregator.daily_sessions(user_id, day)

    def get_range(self, user_id: uuid.UUID, start: Optional[str], end: Optional[str]) -> List[TimerSession]:
        start_date = parse_date(start, "start")
        end_date = parse_date(end, "end")
        return self.aggregator.range_sessions(user_id, start_date, end_date)

    def get_monthly(self, user_id: uuid.UUID, year: int, month: int) -> Dict[str, DailyStats]:
        return self.aggregator.monthly_buckets(user_id, year, month)

    def get_contributions(self, user_id: uuid.UUID) -> ContributionData:
        """
        Build the contribution graph for the last 365 days plus today

        Returns:
            ContributionData with one entry per calendar day in the window,
            366 in total, zero-activity days included at level 0
        """
        now = self.clock()
        window_start = now - timedelta(days=CONTRIBUTION_WINDOW_DAYS)
        sessions = self.store.find_by_user_in_range(user_id, window_start, now)

        counts: Dict[str, int] = {}
        durations: Dict[str, int] = {}
        for session in sessions:
            key = bucket_key(session.start_time)
            counts[key] = counts.get(key, 0) + 1
            durations[key] = durations.get(key, 0) + (session.duration or 0)

        max_duration = window_max(durations.values())
        levels = compute_levels(durations, max_duration)

        data = ContributionData()
        for day in iter_dates(window_start.date(), now.date()):
            key = day.strftime(DATE_FORMAT)
            count = counts.get(key, 0)
            duration = durations.get(key, 0)
            data.days.append(ContributionDay(
                date=key,
                count=count,
                duration=duration,
                level=levels.get(key, 0)
            ))
            data.total_sessions += count
            data.total_duration += duration

        logger.debug(
            "Contributions for user %s: %d sessions over %d days",
            user_id, data.total_sessions, len(data.days)
        )
        return data
