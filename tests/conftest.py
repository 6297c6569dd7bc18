"""Pytest fixtures and configuration for goalblocks tests."""

import os

# Keep the module-level engine off the filesystem; tests use their own engine below.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from goalblocks.database.database import Base
from goalblocks.database.recurring_series_repository import RecurringSeriesRepository
from goalblocks.database.schedule_repository import ScheduleRepository
from goalblocks.models.block import BlockCategory, BlockInstance, BlockTemplate


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_session(test_user_id):
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    Also creates a test user in the database.
    """
    from goalblocks.database.models import UserDB

    # StaticPool keeps the single in-memory connection alive across sessions.
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    # Create test user (required for foreign key constraints)
    now = datetime.utcnow()
    session.add(
        UserDB(
            id=test_user_id,
            email="test@example.com",
            name="Test User",
            created_at=now,
            updated_at=now,
        )
    )
    session.commit()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_user_id():
    """Test user ID for multi-user testing."""
    return "test-user-123"


@pytest.fixture
def schedule_repo(db_session: Session):
    return ScheduleRepository(db_session)


@pytest.fixture
def series_repo(db_session: Session):
    return RecurringSeriesRepository(db_session)


@pytest.fixture
def workout_template():
    """Morning workout block used by most recurrence tests."""
    return BlockTemplate(
        title="Morning run",
        category=BlockCategory.PHYSICAL,
        start_time="07:00",
        end_time="07:45",
        goal_id="goal-fitness",
        tags=["cardio"],
    )


@pytest.fixture
def one_off_block():
    """A non-recurring block as written by PUT /schedule/{date}."""
    return BlockInstance(
        id="one-off-1",
        title="Dentist",
        category=BlockCategory.PERSONAL,
        start_time="09:00",
        end_time="10:00",
    )


@pytest.fixture
def test_user(test_user_id):
    """Create a test user object."""
    from goalblocks.models.user import User
    now = datetime.utcnow()
    return User(
        id=test_user_id,
        email="test@example.com",
        name="Test User",
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def test_client(db_session: Session, test_user):
    """Create a FastAPI test client with overridden database dependency and authentication."""
    from goalblocks.api.app import app
    from goalblocks.database.database import get_db
    from goalblocks.auth.dependencies import get_current_user

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    # Override authentication to return test user
    def override_get_current_user():
        return test_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()
