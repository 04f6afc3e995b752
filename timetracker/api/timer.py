from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
from typing import List, Optional

from timetracker.database import get_db
from timetracker.exceptions import ConflictError
from timetracker.repositories.session_store import SessionStore
from timetracker.services.session_service import SessionService
from timetracker.api.auth import get_current_user
from timetracker.api.metrics import timer_sessions_started, timer_sessions_stopped, timer_sessions_deleted, timer_start_conflicts
from timetracker.models.models import User
from timetracker.schemas.timer import StartTimerRequest, UpdateNotesRequest, SessionResponse, DeleteResponse

router = APIRouter(
    prefix="/timer",
    tags=["timer"],
    responses={404: {"description": "Not found"}}
)

def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    return SessionService(SessionStore(db))

async def read_start_request(request: Request) -> StartTimerRequest:
    """Body of POST /start; a missing or unreadable body means no notes"""
    try:
        return StartTimerRequest.model_validate(await request.json())
    except (ValueError, PydanticValidationError):
        return StartTimerRequest()

@router.post("/start", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def start_timer(
    body: StartTimerRequest = Depends(read_start_request),
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """Start a new timer session"""
    try:
        session = service.start_session(current_user.id, body.notes)
    except ConflictError:
        timer_start_conflicts.inc()
        raise
    timer_sessions_started.inc()
    return session

@router.post("/stop/{session_id}", response_model=SessionResponse)
def stop_timer(
    session_id: str,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """Stop an active timer session"""
    session = service.stop_session(current_user.id, session_id)
    timer_sessions_stopped.inc()
    return session

@router.get("/active", response_model=Optional[SessionResponse])
def get_active_session(
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """Get the user's active timer session if one exists"""
    return service.get_active_session(current_user.id)

@router.get("/sessions", response_model=List[SessionResponse])
def list_sessions(
    limit: Optional[int] = Query(default=None),
    offset: Optional[int] = Query(default=None),
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """List the user's sessions, newest first"""
    return service.list_sessions(current_user.id, limit, offset)

@router.patch("/{session_id}/notes", response_model=SessionResponse)
def update_notes(
    session_id: str,
    body: UpdateNotesRequest,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """Replace a session's notes"""
    return service.update_notes(current_user.id, session_id, body.notes)

@router.delete("/{session_id}", response_model=DeleteResponse)
def delete_session(
    session_id: str,
    current_user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service)
):
    """Delete a timer session"""
    service.delete_session(current_user.id, session_id)
    timer_sessions_deleted.inc()
    return DeleteResponse()
