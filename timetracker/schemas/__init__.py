from .timer import StartTimerRequest, UpdateNotesRequest, SessionResponse, DeleteResponse
from .calendar import DailyStatsResponse, ContributionDayResponse, ContributionDataResponse
from .user import UserCreate, UserLogin, UserResponse, AuthResponse, Token

__all__ = [
    'StartTimerRequest',
    'UpdateNotesRequest',
    'SessionResponse',
    'DeleteResponse',
    'DailyStatsResponse',
    'ContributionDayResponse',
    'ContributionDataResponse',
    'UserCreate',
    'UserLogin',
    'UserResponse',
    'AuthResponse',
    'Token',
]
