import os

# Must be set before subtracker.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["RESEND_API_KEY"] = ""
os.environ["DISCORD_WEBHOOK_URL"] = ""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from subtracker.auth import create_access_token, hash_password
from subtracker.db import Base, get_db
from subtracker.main import app
from subtracker.models.subscription import Subscription
from subtracker.models.user import User
from subtracker.services.feed import subscription_feed
from subtracker.services.renewal import add_months, civil_today


@pytest.fixture(autouse=True)
def reset_feed():
    subscription_feed.clear()
    yield
    subscription_feed.clear()


@pytest.fixture
def db_session():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_client(db_session, user=None):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    if user is not None:
        token = create_access_token(data={"sub": str(user.id)})
        test_client.headers["Authorization"] = f"Bearer {token}"
        test_client.test_user = user  # Attach user for assertions
    return test_client


def _create_user(db_session, email, display_name=None):
    user = User(
        email=email,
        hashed_password=hash_password("password123!"),
        display_name=display_name,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def client(db_session):
    """Create a test client with database session override."""
    with _make_client(db_session) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(db_session):
    """Create a test client with an authenticated user."""
    user = _create_user(db_session, "test@example.com", display_name="Test User")
    with _make_client(db_session, user) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def second_auth_client(db_session, auth_client):
    """A second authenticated user sharing the same database (for isolation tests)."""
    user = _create_user(db_session, "second@example.com")
    token = create_access_token(data={"sub": str(user.id)})
    with TestClient(app) as test_client:
        test_client.headers["Authorization"] = f"Bearer {token}"
        test_client.test_user = user
        yield test_client


@pytest.fixture
def renewing_in():
    """Return a Monthly start date whose next renewal is ``days`` from today."""

    def start_date(days: int, today: date = None) -> date:
        today = today or civil_today()
        target = today + timedelta(days=days)
        start = add_months(target, -1)
        if add_months(start, 1) != target:
            # The previous month is too short to hold the target day
            start = add_months(target, -12)
        return start

    return start_date


@pytest.fixture
def make_subscription(db_session):
    """Insert a subscription directly, bypassing the API hooks."""

    def create(user, name="Netflix", price=15.99, billing="Monthly", due_date=None, **kwargs):
        subscription = Subscription(
            user_id=user.id,
            name=name,
            price=price,
            billing=billing,
            due_date=due_date or date(2024, 1, 15),
            **kwargs,
        )
        db_session.add(subscription)
        db_session.commit()
        db_session.refresh(subscription)
        return subscription

    return create
