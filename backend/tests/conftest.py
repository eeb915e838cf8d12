"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules:
token secrets in the environment, in-memory repositories, a recording
notifier and a fully wired JourneyAdmissionService.
"""

import uuid
from datetime import datetime, timezone, timedelta
from typing import Optional

import jwt  # PyJWT
import pytest
import pytest_asyncio

from shared.config import get_settings
from shared.database import reset_client_cache
from modules.auth.service import SessionTokenService, reset_session_token_service
from modules.journeys.expiration import ExpirationScheduler
from modules.journeys.join_tokens import JoinTokenIssuer
from modules.journeys.membership import MembershipService
from modules.journeys.memory import (
    InMemoryJourneyRepository,
    InMemoryUserRepository,
    InMemoryExpenseRepository,
)
from modules.journeys.models import Expense, Journey, User
from modules.journeys.service import JourneyAdmissionService


# Test secrets (only for testing)
TEST_JOIN_SECRET = "test-join-secret-for-testing-only"
TEST_SESSION_SECRET = "test-session-secret-for-testing-only"


class RecordingNotifier:
    """INotifier that records journey ids instead of sending them."""

    def __init__(self) -> None:
        self.updates: list[str] = []

    async def notify_journey_update(self, journey_id: str) -> None:
        self.updates.append(journey_id)


class PlainPasswordHasher:
    """IPasswordHasher without bcrypt's cost, for fast tests."""

    def hash(self, password: str) -> str:
        return f"plain:{password}"

    def verify(self, password: str, password_hash: str) -> bool:
        return password_hash == f"plain:{password}"


def create_session_token(
    user_id: str = "test-user-123",
    is_guest: bool = False,
    expired: bool = False,
) -> str:
    """Create a session token signed with the test secret."""
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(days=30)
    payload = {
        "sub": user_id,
        "userId": user_id,
        "isGuest": is_guest,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, TEST_SESSION_SECRET, algorithm="HS256")


@pytest.fixture(autouse=True)
def test_environment(monkeypatch):
    """Point settings at test secrets and reset cached singletons."""
    monkeypatch.setenv("JOIN_TOKEN_SECRET", TEST_JOIN_SECRET)
    monkeypatch.setenv("SESSION_JWT_SECRET", TEST_SESSION_SECRET)
    monkeypatch.setenv("SOCKET_SECRET", "")
    monkeypatch.setenv("SUPABASE_URL", "")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "")
    get_settings.cache_clear()
    reset_session_token_service()
    reset_client_cache()
    yield
    get_settings.cache_clear()
    reset_session_token_service()
    reset_client_cache()


# -----------------------------------------------------------------------------
# Repositories and collaborators
# -----------------------------------------------------------------------------


@pytest.fixture
def journey_repo() -> InMemoryJourneyRepository:
    return InMemoryJourneyRepository()


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def expense_repo() -> InMemoryExpenseRepository:
    return InMemoryExpenseRepository()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def password_hasher() -> PlainPasswordHasher:
    return PlainPasswordHasher()


@pytest.fixture
def sessions() -> SessionTokenService:
    return SessionTokenService(secret=TEST_SESSION_SECRET)


@pytest.fixture
def issuer(journey_repo) -> JoinTokenIssuer:
    return JoinTokenIssuer(journey_repo, secret=TEST_JOIN_SECRET)


@pytest.fixture
def expiration(journey_repo, user_repo, expense_repo, notifier) -> ExpirationScheduler:
    return ExpirationScheduler(journey_repo, user_repo, expense_repo, notifier)


@pytest.fixture
def membership(
    journey_repo, user_repo, issuer, sessions, notifier, expiration, password_hasher
) -> MembershipService:
    return MembershipService(
        journey_repo,
        user_repo,
        issuer=issuer,
        sessions=sessions,
        notifier=notifier,
        expiration=expiration,
        password_hasher=password_hasher,
    )


@pytest.fixture
def journey_service(
    journey_repo, user_repo, issuer, membership, expiration, notifier, password_hasher
) -> JourneyAdmissionService:
    return JourneyAdmissionService(
        journey_repo,
        user_repo,
        issuer=issuer,
        membership=membership,
        expiration=expiration,
        notifier=notifier,
        password_hasher=password_hasher,
    )


# -----------------------------------------------------------------------------
# Seed data
# -----------------------------------------------------------------------------


def make_user(name: str, is_guest: bool = False, email: Optional[str] = None) -> User:
    return User(id=str(uuid.uuid4()), name=name, is_guest=is_guest, email=email)


@pytest_asyncio.fixture
async def leader(user_repo) -> User:
    return await user_repo.create(make_user("Leader", email="leader@example.com"))


@pytest_asyncio.fixture
async def registered_user(user_repo) -> User:
    return await user_repo.create(make_user("Bob", email="bob@example.com"))


@pytest_asyncio.fixture
async def journey(journey_repo, leader) -> Journey:
    """An open journey with only the leader, expiring in five days."""
    now = datetime.now(timezone.utc)
    return await journey_repo.create(
        Journey(
            id=str(uuid.uuid4()),
            slug="summer-trip-abc123",
            name="Summer Trip",
            leader_id=leader.id,
            members=[leader.id],
            expire_at=now + timedelta(days=5),
        )
    )


async def add_expense(expense_repo, journey: Journey, payer_id: str, amount: float = 10) -> Expense:
    return await expense_repo.create(
        Expense(
            id=str(uuid.uuid4()),
            journey_id=journey.id,
            payer_id=payer_id,
            total_amount=amount,
            description="Dinner",
        )
    )


# -----------------------------------------------------------------------------
# Factories (test modules receive helpers through fixtures)
# -----------------------------------------------------------------------------


@pytest.fixture
def create_user(user_repo):
    """Factory fixture: await create_user("Name", is_guest=...) to store a user."""

    async def _create(name: str, is_guest: bool = False, email: Optional[str] = None) -> User:
        return await user_repo.create(make_user(name, is_guest=is_guest, email=email))

    return _create


@pytest.fixture
def create_expense(expense_repo):
    """Factory fixture: await create_expense(journey, payer_id) to store an expense."""

    async def _create(journey: Journey, payer_id: str, amount: float = 10) -> Expense:
        return await add_expense(expense_repo, journey, payer_id, amount)

    return _create


@pytest.fixture
def session_token():
    """Factory fixture returning a signed session token for a user id."""
    return create_session_token


# -----------------------------------------------------------------------------
# API
# -----------------------------------------------------------------------------


@pytest.fixture
def container(monkeypatch, journey_repo, user_repo, expense_repo, notifier):
    """Service container backed by the in-memory repositories, no rate limits."""
    from api.dependencies import get_container, reset_container

    monkeypatch.setenv("PASSWORD_HASH_ROUNDS", "4")
    get_settings.cache_clear()
    reset_container()
    services = get_container()
    services.journey_repository = journey_repo
    services.user_repository = user_repo
    services.expense_repository = expense_repo
    services.notifier = notifier
    services.rate_limiters = {}
    yield services
    reset_container()


@pytest.fixture
def client(container):
    """TestClient over a freshly created app."""
    from fastapi.testclient import TestClient
    from api.app import create_app

    return TestClient(create_app())


@pytest.fixture
def auth_headers():
    """Factory fixture: auth_headers(user) -> Authorization header for that user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_session_token(user.id, is_guest=user.is_guest)}"}

    return _headers
