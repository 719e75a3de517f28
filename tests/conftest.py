import os
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set required environment variables for testing
os.environ["API_V1_STR"] = "/api/v1"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from smartpantry.main import app
from smartpantry.database import get_db, get_session_factory
from smartpantry.models import Base
from smartpantry.schemas.profile import ProfileCreate
from smartpantry.security import create_identity_token
from smartpantry.services.household_service import HouseholdService
from smartpantry.services.invite_service import InviteService
from smartpantry.services.profile_service import ProfileService

TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def engine():
    """A fresh in-memory database per test, shared by every thread."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """
    Create a new database session for each test and route the app's
    database dependencies to the same in-memory engine.
    """
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    def override_get_db():
        try:
            yield session
        finally:
            pass  # Closed after the test

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    yield session

    session.close()
    app.dependency_overrides.clear()


@pytest.fixture
def file_session_factory(tmp_path):
    """
    Session factory over a real SQLite file, for tests that run operations on
    several threads at once (each thread gets its own connection).
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def client(db_session):
    """Create a FastAPI TestClient with database session override."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_profile(db_session):
    """Create a profile for a uid without touching any household."""
    def _make(uid, household_id=None, **fields):
        data = ProfileCreate(
            email=fields.pop("email", f"{uid.lower()}@example.com"),
            household_id=household_id,
            **fields,
        )
        return ProfileService(db_session).create_profile(uid, None, data)
    return _make


@pytest.fixture
def household(db_session):
    """Household owned by uid 'A' with A as its only member."""
    return HouseholdService(db_session).create_household("Home", "A")


@pytest.fixture
def invite_code(db_session, household):
    """Permanent invite code of the 'household' fixture."""
    return InviteService(db_session).get_or_create_code(household.id)


@pytest.fixture
def auth_headers():
    """Build bearer headers for any uid."""
    def _headers(uid, email=None):
        token = create_identity_token(uid, email=email or f"{uid.lower()}@example.com")
        return {"Authorization": f"Bearer {token}"}
    return _headers
