"""Main conftest.py with database, repository and service fixtures."""

import os

# Set test environment variables before anything imports gather settings
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["APP_DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"

from unittest.mock import AsyncMock, Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from gather.core.cache import MembershipCache, membership_cache  # noqa: E402
from gather.core.enums import CommunityType  # noqa: E402
from gather.core.rate_limiter import RateLimiter, get_rate_limiter  # noqa: E402
from gather.dependencies import get_session_factory  # noqa: E402
from gather.main import app  # noqa: E402
from gather.models import (  # noqa: E402
    Base,
    Community,
    CommunityMember,
    JoinRequest,
    Notification,
    UserProfile,
)
from gather.repositories import (  # noqa: E402
    CommunityRepo,
    JoinRequestRepo,
    MembershipRepo,
    NotificationRepo,
    UserProfileRepo,
)
from gather.services.community_service import CommunityService  # noqa: E402
from gather.services.join_request_service import JoinRequestService  # noqa: E402
from gather.services.membership_service import MembershipService  # noqa: E402

from helpers.ids import ADMIN_ID, OWNER_ID, REQUESTER_ID  # noqa: E402

# Test database configuration
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite://")


@pytest.fixture(scope="session")
def test_engine():
    """Create test database engine and tables once per session."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection so every session sees the in-memory database
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(TEST_DATABASE_URL)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="session")
def test_session_factory(test_engine):
    """Create session factory for tests."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=test_engine,
        expire_on_commit=False,  # Prevent DetachedInstanceError
    )


@pytest.fixture
def test_session(test_session_factory):
    """Create a clean database session for each test."""
    session = test_session_factory()
    try:
        yield session
    finally:
        # Rollback any uncommitted changes and close
        session.rollback()
        session.close()


@pytest.fixture(autouse=True)
def clean_db(test_session_factory):
    """Automatically clean database state and the shared cache before each test."""
    session = test_session_factory()
    try:
        # Delete all data in reverse dependency order
        session.query(Notification).delete()
        session.query(JoinRequest).delete()
        session.query(CommunityMember).delete()
        session.query(Community).delete()
        session.query(UserProfile).delete()
        session.commit()
    finally:
        session.close()
    membership_cache.clear()


# Repository fixtures
@pytest.fixture
def community_repo(test_session_factory):
    """CommunityRepo instance with test session factory."""
    return CommunityRepo(test_session_factory)


@pytest.fixture
def membership_repo(test_session_factory):
    """MembershipRepo instance with test session factory."""
    return MembershipRepo(test_session_factory)


@pytest.fixture
def join_request_repo(test_session_factory):
    """JoinRequestRepo instance with test session factory."""
    return JoinRequestRepo(test_session_factory)


@pytest.fixture
def notification_repo(test_session_factory):
    """NotificationRepo instance with test session factory."""
    return NotificationRepo(test_session_factory)


@pytest.fixture
def user_profile_repo(test_session_factory):
    """UserProfileRepo instance with test session factory."""
    return UserProfileRepo(test_session_factory)


# Service fixtures
@pytest.fixture
def cache():
    """A private membership cache per test."""
    return MembershipCache(ttl_seconds=30)


@pytest.fixture
def join_request_service(
    join_request_repo,
    community_repo,
    membership_repo,
    notification_repo,
    user_profile_repo,
    cache,
):
    """JoinRequestService wired to the test repositories."""
    return JoinRequestService(
        join_request_repo,
        community_repo,
        membership_repo,
        notification_repo,
        user_profile_repo,
        cache=cache,
    )


@pytest.fixture
def community_service(community_repo, membership_repo, join_request_service):
    """CommunityService wired to the test repositories."""
    return CommunityService(community_repo, membership_repo, join_request_service)


@pytest.fixture
def membership_service(
    community_repo, membership_repo, community_service, join_request_repo, cache
):
    """MembershipService wired to the test repositories."""
    return MembershipService(
        community_repo,
        membership_repo,
        community_service,
        join_request_repo=join_request_repo,
        cache=cache,
    )


# Test data factories
@pytest.fixture
def public_community(community_service):
    """A public community owned by OWNER_ID."""
    return community_service.create_community(OWNER_ID, "Open Garden")


@pytest.fixture
def private_community(community_service):
    """A private community owned by OWNER_ID with ADMIN_ID as a second admin."""
    community = community_service.create_community(
        OWNER_ID, "Quiet Library", community_type=CommunityType.PRIVATE
    )
    return community_service.add_admin(community.id, ADMIN_ID, OWNER_ID)


@pytest.fixture
def requester_profile(user_profile_repo):
    """Profile for REQUESTER_ID."""
    return user_profile_repo.create_profile(
        REQUESTER_ID, name="Rosa Requester", email="rosa@example.com"
    )


# API fixtures
@pytest.fixture
def mock_rate_limiter():
    """Rate limiter double that allows every request by default."""
    limiter = Mock(spec=RateLimiter)
    limiter.check_user_rate_limit = AsyncMock(return_value=True)
    limiter.get_user_rate_limit_info = AsyncMock(
        return_value={"limit": 5, "remaining": 0, "reset": 42}
    )
    return limiter


@pytest.fixture
def client(test_session_factory, mock_rate_limiter):
    """Test client bound to the test database."""
    app.dependency_overrides[get_session_factory] = lambda: test_session_factory
    app.dependency_overrides[get_rate_limiter] = lambda: mock_rate_limiter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
