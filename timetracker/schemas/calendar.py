from typing import List

from .timer import CamelModel, SessionResponse


class DailyStatsResponse(CamelModel):
    date: str
    total_duration: int
    sessions: List[SessionResponse]


class ContributionDayResponse(CamelModel):
    date: str
    count: int
    duration: int
    level: int


class ContributionDataResponse(CamelModel):
    days: List[ContributionDayResponse]
    total_sessions: int
    total_duration: int
