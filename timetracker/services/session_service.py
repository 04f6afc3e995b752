from typing import Callable, List, Optional, Union
from datetime import datetime
import logging
import math
import uuid

from timetracker.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from timetracker.models.models import TimerSession
from timetracker.repositories.session_store import SessionStore
from timetracker.utils.time_utils import utcnow
from timetracker.utils.uuid_utils import parse_uuid

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_SESSION_PAGE_SIZE = 200

SessionId = Union[str, uuid.UUID]


class SessionService:
    def __init__(self, store: SessionStore, clock: Callable[[], datetime] = utcnow):
        """
        Initialize the session service

        Args:
            store: Session store used for every read and write
            clock: Returns the current time as naive UTC
        """
        self.store = store
        self.clock = clock

    def start_session(self, user_id: uuid.UUID, notes: Optional[str] = None) -> TimerSession:
        """
        Start a new timer session

        Args:
            user_id: ID of the user starting the session
            notes: Optional free-text notes

        Returns:
            Created TimerSession instance

        Raises:
            ConflictError: The user already has an active session
        """
        # The unique index is the real guard; this gives the friendlier error
        if self.store.find_active_by_user(user_id):
            raise ConflictError("You already have an active timer session")

        now = self.clock()
        session = TimerSession(
            id=uuid.uuid4(),
            user_id=user_id,
            start_time=now,
            created_at=now,
            notes=notes or None
        )
        session = self.store.insert(session)
        logger.info("Started session %s for user %s", session.id, user_id)
        return session

    def stop_session(self, user_id: uuid.UUID, session_id: SessionId) -> TimerSession:
        """
        Stop an active session and record its duration

        Args:
            user_id: ID of the requesting user
            session_id: ID of the session to stop

        Returns:
            Updated TimerSession instance

        Raises:
            NotFoundError: Session missing or owned by another user
            InvalidStateError: Session was already stopped
        """
        session = self._get_owned(user_id, session_id)
        if session.end_time is not None:
            raise InvalidStateError("Session is already stopped")

        end_time = self.clock()
        elapsed = (end_time - session.start_time).total_seconds()
        if elapsed < 0:
            logger.warning(
                "Clock moved backwards for session %s (%.3fs); recording zero duration",
                session.id, elapsed
            )
            elapsed = 0
        duration = math.floor(elapsed)

        session = self.store.close(session.id, end_time, duration)
        logger.info("Stopped session %s for user %s after %ss", session.id, user_id, duration)
        return session

    def get_active_session(self, user_id: uuid.UUID) -> Optional[TimerSession]:
        """Get the user's open session, or None if there isn't one"""
        active = self.store.find_active_by_user(user_id)
        if not active:
            return None
        if len(active) > 1:
            logger.error(
                "User %s has %d active sessions; returning the most recent",
                user_id, len(active)
            )
        return active[0]

    def list_sessions(
        self,
        user_id: uuid.UUID,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> List[TimerSession]:
        """
        List the user's sessions, newest first

        A missing or zero limit means the default page size; larger limits
        are capped at MAX_SESSION_PAGE_SIZE.
        """
        if limit is not None and limit < 0:
            raise ValidationError("limit must not be negative")
        if offset is not None and offset < 0:
            raise ValidationError("offset must not be negative")

        limit = min(limit or DEFAULT_PAGE_SIZE, MAX_SESSION_PAGE_SIZE)
        return self.store.find_by_user(user_id, limit, offset or 0)

    def update_notes(self, user_id: uuid.UUID, session_id: SessionId, notes: Optional[str]) -> TimerSession:
        """Replace a session's notes; works on active and stopped sessions"""
        session = self._get_owned(user_id, session_id)
        return self.store.update(session.id, {'notes': notes})

    def delete_session(self, user_id: uuid.UUID, session_id: SessionId) -> None:
        """Delete a session outright, active or not"""
        session = self._get_owned(user_id, session_id)
        self.store.delete(session.id)
        logger.info("Deleted session %s for user %s", session.id, user_id)

    def _get_owned(self, user_id: uuid.UUID, session_id: SessionId) -> TimerSession:
        # Same error whether the row is missing or someone else's
        parsed = parse_uuid(session_id)
        if parsed is None:
            raise NotFoundError()
        session = self.store.find_by_id(parsed)
        if session is None or str(session.user_id) != str(user_id):
            raise NotFoundError()
        return session
