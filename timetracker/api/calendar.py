from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Dict, List, Optional

from timetracker.database import get_db
from timetracker.repositories.session_store import SessionStore
from timetracker.services.calendar_service import CalendarService
from timetracker.api.auth import get_current_user
from timetracker.models.models import User
from timetracker.schemas.timer import SessionResponse
from timetracker.schemas.calendar import DailyStatsResponse, ContributionDataResponse

router = APIRouter(prefix="/calendar", tags=["calendar"])

def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    return CalendarService(SessionStore(db))

@router.get("/daily/{date}", response_model=DailyStatsResponse)
def get_daily_stats(
    date: str,
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service)
):
    """Get sessions and total duration for one UTC day (YYYY-MM-DD)"""
    return DailyStatsResponse.model_validate(service.get_daily(current_user.id, date))

@router.get("/range", response_model=List[SessionResponse])
def get_range_sessions(
    start: Optional[str] = Query(default=None, description="First day, YYYY-MM-DD"),
    end: Optional[str] = Query(default=None, description="Last day, YYYY-MM-DD"),
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service)
):
    """Get sessions between two UTC days, inclusive"""
    return service.get_range(current_user.id, start, end)

@router.get("/contributions", response_model=ContributionDataResponse)
def get_contributions(
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service)
):
    """Get contribution graph data for the last 365 days"""
    return ContributionDataResponse.model_validate(service.get_contributions(current_user.id))

@router.get("/monthly/{year}/{month}", response_model=Dict[str, DailyStatsResponse])
def get_monthly_summary(
    year: int,
    month: int,
    current_user: User = Depends(get_current_user),
    service: CalendarService = Depends(get_calendar_service)
):
    """Get per-day stats for a calendar month, keyed by YYYY-MM-DD"""
    buckets = service.get_monthly(current_user.id, year, month)
    return {day: DailyStatsResponse.model_validate(stats) for day, stats in buckets.items()}
