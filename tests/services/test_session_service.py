import pytest
import random
from datetime import datetime, timedelta
from sqlalchemy.orm import Session, sessionmaker
import uuid

from timetracker.exceptions import ConflictError, InvalidStateError, NotFoundError, ValidationError
from timetracker.database import Base, build_engine
from timetracker.models.models import TimerSession, User
from timetracker.repositories.session_store import SessionStore
from timetracker.services.session_service import SessionService, MAX_SESSION_PAGE_SIZE

@pytest.fixture
def store(db: Session):
    return SessionStore(db)

@pytest.fixture
def session_service(store, clock):
    return SessionService(store, clock=clock)

@pytest.fixture
def user(test_user):
    return test_user["user"]

@pytest.fixture
def other_user(test_user2):
    return test_user2["user"]

def test_start_session(session_service, user, clock):
    """Test starting a new timer session"""
    session = session_service.start_session(user.id, "writing docs")

    assert session.id is not None
    assert session.user_id == user.id
    assert session.start_time == clock.now
    assert session.created_at == clock.now
    assert session.end_time is None
    assert session.duration is None
    assert session.notes == "writing docs"

def test_start_session_without_notes(session_service, user):
    session = session_service.start_session(user.id)
    assert session.notes is None

    session_service.stop_session(user.id, session.id)
    assert session_service.start_session(user.id, "").notes is None

def test_start_session_with_active_conflicts(session_service, user):
    """Starting while a session is open fails and leaves the open one alone"""
    first = session_service.start_session(user.id)

    with pytest.raises(ConflictError):
        session_service.start_session(user.id)

    active = session_service.get_active_session(user.id)
    assert active.id == first.id

def test_start_session_other_user_does_not_conflict(session_service, user, other_user):
    session_service.start_session(user.id)
    other = session_service.start_session(other_user.id)

    assert other.user_id == other_user.id

def test_unique_index_backstops_start_race(store, user, clock):
    """Two inserts that both skipped the pre-check still yield one active session"""
    store.insert(TimerSession(user_id=user.id, start_time=clock.now, created_at=clock.now))

    with pytest.raises(ConflictError):
        store.insert(TimerSession(user_id=user.id, start_time=clock.now, created_at=clock.now))

    assert len(store.find_active_by_user(user.id)) == 1

def test_stop_session_records_floor_duration(session_service, user, clock):
    session = session_service.start_session(user.id)
    clock.advance(seconds=90, milliseconds=999)

    stopped = session_service.stop_session(user.id, session.id)

    assert stopped.end_time == clock.now
    assert stopped.duration == 90

def test_stop_session_accepts_string_id(session_service, user, clock):
    session = session_service.start_session(user.id)
    clock.advance(minutes=5)

    stopped = session_service.stop_session(user.id, str(session.id))
    assert stopped.duration == 300

def test_stop_session_twice_fails(session_service, user, clock):
    """Stop is not idempotent"""
    session = session_service.start_session(user.id)
    clock.advance(seconds=10)
    session_service.stop_session(user.id, session.id)
    clock.advance(seconds=10)

    with pytest.raises(InvalidStateError):
        session_service.stop_session(user.id, session.id)

    assert session_service.store.find_by_id(session.id).duration == 10

def test_stop_session_clock_backwards_records_zero(session_service, user, clock):
    session = session_service.start_session(user.id)
    clock.advance(seconds=-30)

    stopped = session_service.stop_session(user.id, session.id)
    assert stopped.duration == 0

def test_stop_nonexistent_session(session_service, user):
    with pytest.raises(NotFoundError):
        session_service.stop_session(user.id, uuid.uuid4())

def test_stop_malformed_session_id(session_service, user):
    with pytest.raises(NotFoundError):
        session_service.stop_session(user.id, "not-a-uuid")

def test_stop_other_users_session(session_service, user, other_user):
    session = session_service.start_session(user.id)

    with pytest.raises(NotFoundError) as excinfo:
        session_service.stop_session(other_user.id, session.id)

    assert excinfo.value.message == "Session not found"
    assert session_service.get_active_session(user.id).id == session.id

def test_get_active_session(session_service, user):
    session = session_service.start_session(user.id)

    active = session_service.get_active_session(user.id)
    assert active is not None
    assert active.id == session.id

def test_get_active_session_none(session_service, user, clock):
    assert session_service.get_active_session(user.id) is None

    session = session_service.start_session(user.id)
    clock.advance(minutes=1)
    session_service.stop_session(user.id, session.id)
    assert session_service.get_active_session(user.id) is None

def test_get_active_session_inconsistent_store_returns_latest(user, clock):
    """If the store ever reports two open sessions, the newest one wins"""
    older = TimerSession(id=uuid.uuid4(), user_id=user.id, start_time=clock.now - timedelta(hours=1))
    newer = TimerSession(id=uuid.uuid4(), user_id=user.id, start_time=clock.now)

    class InconsistentStore:
        def find_active_by_user(self, user_id):
            return [newer, older]

    service = SessionService(InconsistentStore(), clock=clock)
    assert service.get_active_session(user.id) is newer

def test_list_sessions_newest_first(session_service, user, make_session, clock):
    for hours in (3, 1, 2):
        make_session(user, clock.now - timedelta(hours=hours), duration=60)

    sessions = session_service.list_sessions(user.id)

    starts = [s.start_time for s in sessions]
    assert starts == sorted(starts, reverse=True)
    assert len(sessions) == 3

def test_list_sessions_pagination(session_service, user, make_session, clock):
    for minutes in range(25):
        make_session(user, clock.now - timedelta(minutes=minutes), duration=10)

    assert len(session_service.list_sessions(user.id)) == 20
    assert len(session_service.list_sessions(user.id, limit=0)) == 20

    page = session_service.list_sessions(user.id, limit=10, offset=20)
    assert len(page) == 5
    assert page[0].start_time == clock.now - timedelta(minutes=20)

def test_list_sessions_caps_limit(session_service, store, user):
    captured = {}
    original = store.find_by_user

    def spy(user_id, limit, offset):
        captured["limit"] = limit
        return original(user_id, limit, offset)

    store.find_by_user = spy
    session_service.list_sessions(user.id, limit=10_000)
    assert captured["limit"] == MAX_SESSION_PAGE_SIZE

def test_list_sessions_rejects_negative_paging(session_service, user):
    with pytest.raises(ValidationError):
        session_service.list_sessions(user.id, limit=-1)
    with pytest.raises(ValidationError):
        session_service.list_sessions(user.id, offset=-5)

def test_list_sessions_user_isolation(session_service, user, other_user, make_session, clock):
    make_session(user, clock.now, duration=60)
    make_session(other_user, clock.now, duration=60)

    sessions = session_service.list_sessions(user.id)
    assert [s.user_id for s in sessions] == [user.id]

def test_update_notes_active_and_stopped(session_service, user, clock):
    session = session_service.start_session(user.id, "first")

    updated = session_service.update_notes(user.id, session.id, "while running")
    assert updated.notes == "while running"
    assert updated.end_time is None

    clock.advance(minutes=2)
    session_service.stop_session(user.id, session.id)
    updated = session_service.update_notes(user.id, session.id, "after stopping")
    assert updated.notes == "after stopping"
    assert updated.duration == 120

def test_update_notes_other_user_not_found(session_service, user, other_user):
    session = session_service.start_session(user.id, "mine")

    with pytest.raises(NotFoundError):
        session_service.update_notes(other_user.id, session.id, "hijacked")

    assert session_service.store.find_by_id(session.id).notes == "mine"

def test_delete_session(session_service, user):
    session = session_service.start_session(user.id)

    session_service.delete_session(user.id, session.id)

    assert session_service.store.find_by_id(session.id) is None
    assert session_service.get_active_session(user.id) is None

def test_delete_session_twice_fails(session_service, user, clock):
    session = session_service.start_session(user.id)
    clock.advance(seconds=5)
    session_service.stop_session(user.id, session.id)

    session_service.delete_session(user.id, session.id)
    with pytest.raises(NotFoundError):
        session_service.delete_session(user.id, session.id)

def test_delete_other_users_session(session_service, user, other_user):
    session = session_service.start_session(user.id)

    with pytest.raises(NotFoundError):
        session_service.delete_session(other_user.id, session.id)

    assert session_service.store.find_by_id(session.id) is not None

def test_random_start_stop_keeps_single_active_session(session_service, db, user, other_user, clock):
    """At most one open session per user under any interleaving of start/stop"""
    rng = random.Random(1234)
    users = [user, other_user]

    for _ in range(200):
        actor = rng.choice(users)
        clock.advance(seconds=rng.randint(0, 600))
        if rng.random() < 0.5:
            try:
                session_service.start_session(actor.id)
            except ConflictError:
                pass
        else:
            candidates = session_service.list_sessions(actor.id, limit=5)
            if not candidates:
                continue
            try:
                session_service.stop_session(actor.id, rng.choice(candidates).id)
            except InvalidStateError:
                pass

        for u in users:
            open_count = (
                db.query(TimerSession)
                .filter(TimerSession.user_id == u.id, TimerSession.end_time.is_(None))
                .count()
            )
            assert open_count <= 1

    for s in db.query(TimerSession).all():
        assert (s.end_time is None) == (s.duration is None)
        if s.duration is not None:
            assert s.duration == int((s.end_time - s.start_time).total_seconds())

@pytest.fixture
def two_connections(tmp_path):
    """Two independent ORM sessions over one file-backed SQLite database"""
    engine = build_engine(f"sqlite:///{tmp_path / 'timers.db'}")
    Base.metadata.create_all(bind=engine)
    SessionFactory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = SessionFactory(), SessionFactory()

    owner = User(email="owner@example.com", name="Owner", hashed_password="x")
    first.add(owner)
    first.commit()
    first.refresh(owner)

    yield owner, first, second

    first.close()
    second.close()
    engine.dispose()

def test_overlapping_stops_close_session_once(two_connections, clock):
    """A stop that read the row before another stop committed must not overwrite it"""
    owner, first, second = two_connections
    service_a = SessionService(SessionStore(first), clock=clock)
    service_b = SessionService(SessionStore(second), clock=clock)

    session_id = service_a.start_session(owner.id).id
    held = service_b.store.find_by_id(session_id)
    assert held.end_time is None

    clock.advance(seconds=100)
    service_a.stop_session(owner.id, session_id)
    clock.advance(seconds=500)

    with pytest.raises(InvalidStateError):
        service_b.stop_session(owner.id, session_id)

    stored = service_b.store.find_by_id(session_id)
    assert stored.duration == 100
    assert stored.end_time == datetime(2024, 6, 15, 12, 1, 40)

def test_stop_after_concurrent_delete_is_not_found(two_connections, clock):
    owner, first, second = two_connections
    service_a = SessionService(SessionStore(first), clock=clock)
    service_b = SessionService(SessionStore(second), clock=clock)

    session_id = service_a.start_session(owner.id).id
    service_b.store.find_by_id(session_id)

    service_a.delete_session(owner.id, session_id)
    clock.advance(seconds=30)

    with pytest.raises(NotFoundError):
        service_b.stop_session(owner.id, session_id)

def test_update_notes_after_concurrent_delete_is_not_found(two_connections, clock):
    owner, first, second = two_connections
    service_a = SessionService(SessionStore(first), clock=clock)
    service_b = SessionService(SessionStore(second), clock=clock)

    session_id = service_a.start_session(owner.id).id
    service_b.store.find_by_id(session_id)
    service_a.delete_session(owner.id, session_id)

    with pytest.raises(NotFoundError):
        service_b.update_notes(owner.id, session_id, "too late")

    assert service_a.store.find_by_id(session_id) is None
