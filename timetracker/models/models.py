from __future__ import annotations

from sqlalchemy import String, DateTime, Integer, ForeignKey, Text, Index, CheckConstraint, Uuid, text
from sqlalchemy.orm import relationship, declarative_base, Mapped, mapped_column
from datetime import datetime
import uuid

from timetracker.utils.time_utils import utcnow

Base = declarative_base()

ACTIVE_SESSION_INDEX = 'uq_timer_sessions_one_active_per_user'


class User(Base):
    __tablename__ = 'users'

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    timer_sessions: Mapped[list[TimerSession]] = relationship(
        'TimerSession', back_populates='user', cascade='all, delete-orphan', passive_deletes=True
    )


class TimerSession(Base):
    __tablename__ = 'timer_sessions'

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime)
    # Seconds, materialized when the session is stopped
    duration: Mapped[int | None] = mapped_column(Integer)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    user: Mapped[User] = relationship('User', back_populates='timer_sessions')

    __table_args__ = (
        Index('ix_timer_sessions_user_start', 'user_id', 'start_time'),
        # At most one open session per user
        Index(
            ACTIVE_SESSION_INDEX,
            'user_id',
            unique=True,
            postgresql_where=text('end_time IS NULL'),
            sqlite_where=text('end_time IS NULL'),
        ),
        CheckConstraint('duration IS NULL OR duration >= 0', name='ck_timer_sessions_duration_non_negative'),
        CheckConstraint('(end_time IS NULL) = (duration IS NULL)', name='ck_timer_sessions_duration_iff_ended'),
    )

    @property
    def is_active(self) -> bool:
        return self.end_time is None
