import os

# Configure the app before it is imported
os.environ["SECRET_KEY"] = "test_secret_key_for_testing_only"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["CREATE_TABLES"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from typing import Callable, Dict, Generator, Optional
from datetime import datetime, timedelta
from faker import Faker
import uuid

from timetracker.main import app
from timetracker.database import get_db, build_engine, Base
from timetracker.models.models import User, TimerSession
from timetracker.services.auth_service import create_token_for_user, get_password_hash

# Fresh schema per test; in-memory SQLite unless a real database is given
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite://")

fake = Faker()


class FrozenClock:
    """Stand-in for the services' clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine():
    engine = build_engine(TEST_DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture
def db(engine) -> Generator:
    """Get test database session"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

@pytest.fixture
def client(db) -> TestClient:
    """Get test client with database dependency override"""
    def override_get_db_for_test():
        yield db

    app.dependency_overrides[get_db] = override_get_db_for_test
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 6, 15, 12, 0, 0))

def _create_user(db, password: str) -> Dict:
    db_user = User(
        email=fake.unique.email().lower(),
        name=fake.name(),
        hashed_password=get_password_hash(password),
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    access_token = create_token_for_user(db_user)
    return {
        "user": db_user,
        "access_token": access_token,
        "token_type": "bearer",
        "password": password,
        "headers": {"Authorization": f"Bearer {access_token}"}
    }

@pytest.fixture
def test_user(db) -> Dict:
    """Create a test user and return user data with tokens"""
    return _create_user(db, "testpassword123")

@pytest.fixture
def test_user2(db) -> Dict:
    """Create a second test user for testing user isolation"""
    return _create_user(db, "testpassword456")

@pytest.fixture
def make_session(db) -> Callable[..., TimerSession]:
    """Insert a session row directly; a duration makes it a stopped session"""
    def _make(user: User, start_time: datetime, duration: Optional[int] = None, notes: Optional[str] = None) -> TimerSession:
        session = TimerSession(
            id=uuid.uuid4(),
            user_id=user.id,
            start_time=start_time,
            end_time=start_time + timedelta(seconds=duration) if duration is not None else None,
            duration=duration,
            notes=notes,
            created_at=start_time
        )
        db.add(session)
        db.commit()
        db.refresh(session)
        return session

    return _make
