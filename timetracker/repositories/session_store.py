"""
Session Store

Persistence for timer sessions on top of a SQLAlchemy session. Every
database failure leaves this module as a ``StorageError`` so the services
never see driver exceptions.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional
import uuid

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, InvalidStateError, NotFoundError, StorageError
from ..models.models import ACTIVE_SESSION_INDEX, TimerSession

logger = logging.getLogger(__name__)

# Fields that may be written after a session is created
MUTABLE_FIELDS = frozenset({'end_time', 'duration', 'notes'})


class SessionStore:
    """CRUD and filtered queries over the ``timer_sessions`` table."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError as e:
            self.db.rollback()
            if ACTIVE_SESSION_INDEX in str(e.orig) or 'timer_sessions.user_id' in str(e.orig):
                logger.info("Active session constraint rejected %s", operation)
                raise ConflictError("You already have an active timer session") from e
            logger.exception("Integrity error during %s", operation)
            raise StorageError() from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error during %s", operation)
            raise StorageError() from e

    def insert(self, session: TimerSession) -> TimerSession:
        with self._guard("insert"):
            self.db.add(session)
            self.db.commit()
            self.db.refresh(session)
        return session

    def find_by_id(self, session_id: uuid.UUID) -> Optional[TimerSession]:
        with self._guard("find_by_id"):
            return self.db.get(TimerSession, session_id)

    def find_active_by_user(self, user_id: uuid.UUID) -> List[TimerSession]:
        """All open sessions for the user, most recently started first.

        The unique index keeps this to at most one row; callers decide what
        to do if that ever stops holding.
        """
        with self._guard("find_active_by_user"):
            return (
                self.db.query(TimerSession)
                .filter(TimerSession.user_id == user_id, TimerSession.end_time.is_(None))
                .order_by(TimerSession.start_time.desc())
                .all()
            )

    def find_by_user_in_range(
        self,
        user_id: uuid.UUID,
        start: datetime,
        end: datetime
    ) -> List[TimerSession]:
        """Sessions whose start_time lies in ``[start, end]``, newest first."""
        with self._guard("find_by_user_in_range"):
            return (
                self.db.query(TimerSession)
                .filter(
                    TimerSession.user_id == user_id,
                    TimerSession.start_time >= start,
                    TimerSession.start_time <= end
                )
                .order_by(TimerSession.start_time.desc())
                .all()
            )

    def find_by_user(self, user_id: uuid.UUID, limit: int, offset: int) -> List[TimerSession]:
        with self._guard("find_by_user"):
            return (
                self.db.query(TimerSession)
                .filter(TimerSession.user_id == user_id)
                .order_by(TimerSession.start_time.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )

    def update(self, session_id: uuid.UUID, patch: Dict[str, Any]) -> TimerSession:
        unknown = set(patch) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")

        with self._guard("update"):
            updated = (
                self.db.query(TimerSession)
                .filter(TimerSession.id == session_id)
                .update(patch, synchronize_session=False)
            )
            if not updated:
                self.db.rollback()
                raise NotFoundError()
            self.db.commit()
            return self.db.get(TimerSession, session_id, populate_existing=True)

    def close(self, session_id: uuid.UUID, end_time: datetime, duration: int) -> TimerSession:
        """Set end_time and duration, but only while the session is still open.

        The open check and the write are one UPDATE statement, so of two
        overlapping stops exactly one matches the row.
        """
        with self._guard("close"):
            closed = (
                self.db.query(TimerSession)
                .filter(TimerSession.id == session_id, TimerSession.end_time.is_(None))
                .update({'end_time': end_time, 'duration': duration}, synchronize_session=False)
            )
            if not closed:
                self.db.rollback()
                if self.db.get(TimerSession, session_id, populate_existing=True) is None:
                    raise NotFoundError()
                raise InvalidStateError("Session is already stopped")
            self.db.commit()
            return self.db.get(TimerSession, session_id, populate_existing=True)

    def delete(self, session_id: uuid.UUID) -> None:
        with self._guard("delete"):
            deleted = (
                self.db.query(TimerSession)
                .filter(TimerSession.id == session_id)
                .delete(synchronize_session='fetch')
            )
            if not deleted:
                self.db.rollback()
                raise NotFoundError()
            self.db.commit()
