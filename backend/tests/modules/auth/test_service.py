import pytest
import jwt
from datetime import datetime, timedelta, timezone

from modules.auth.service import (
    SessionTokenService,
    get_session_token_service,
    reset_session_token_service,
)
from modules.auth.exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
)


class TestSessionTokenService:
    @pytest.fixture
    def service(self):
        return SessionTokenService(secret="test-secret")

    @pytest.fixture
    def expired_token(self):
        """Create an expired session token."""
        payload = {
            "sub": "user-123",
            "isGuest": False,
            "exp": datetime.now(timezone.utc) - timedelta(hours=1),
            "iat": datetime.now(timezone.utc) - timedelta(days=31),
        }
        return jwt.encode(payload, "test-secret", algorithm="HS256")

    def test_issue_token_claims(self, service):
        """Issued tokens carry the user id under sub and userId."""
        token = service.issue_token("user-123", is_guest=True)
        payload = jwt.decode(token, "test-secret", algorithms=["HS256"])

        assert payload["sub"] == "user-123"
        assert payload["userId"] == "user-123"
        assert payload["isGuest"] is True
        assert "email" not in payload

    def test_issue_token_defaults_to_thirty_days(self, service):
        token = service.issue_token("user-123")
        payload = jwt.decode(token, "test-secret", algorithms=["HS256"])
        assert payload["exp"] - payload["iat"] == 30 * 24 * 60 * 60

    def test_issue_token_with_explicit_lifetime(self, service):
        token = service.issue_token("user-123", expires_in=600)
        payload = jwt.decode(token, "test-secret", algorithms=["HS256"])
        assert payload["exp"] - payload["iat"] == 600

    def test_issue_token_includes_email(self, service):
        token = service.issue_token("user-123", email="a@example.com")
        payload = jwt.decode(token, "test-secret", algorithms=["HS256"])
        assert payload["email"] == "a@example.com"

    def test_issue_token_requires_secret(self):
        service = SessionTokenService(secret="")
        with pytest.raises(RuntimeError, match="SESSION_JWT_SECRET"):
            service.issue_token("user-123")

    @pytest.mark.asyncio
    async def test_validate_issued_token(self, service):
        """Should validate a token it issued and return the user."""
        token = service.issue_token("user-123", is_guest=True, email="a@example.com")
        user = await service.validate_token(token)

        assert user.id == "user-123"
        assert user.is_guest is True
        assert user.email == "a@example.com"
        assert user.issued_at is not None

    @pytest.mark.asyncio
    async def test_validate_expired_token(self, service, expired_token):
        with pytest.raises(ExpiredTokenError):
            await service.validate_token(expired_token)

    @pytest.mark.asyncio
    async def test_validate_invalid_token(self, service):
        with pytest.raises(InvalidTokenError):
            await service.validate_token("not-a-valid-token")

    @pytest.mark.asyncio
    async def test_validate_wrong_secret(self, service):
        token = SessionTokenService(secret="other-secret").issue_token("user-123")
        with pytest.raises(InvalidTokenError):
            await service.validate_token(token)

    @pytest.mark.asyncio
    async def test_validate_missing_token(self, service):
        with pytest.raises(MissingTokenError):
            await service.validate_token("")

    @pytest.mark.asyncio
    async def test_validate_none_token(self, service):
        with pytest.raises(MissingTokenError):
            await service.validate_token(None)


class TestSessionTokenServiceSingleton:
    def test_reads_secret_from_settings(self):
        """The singleton picks up SESSION_JWT_SECRET from the environment."""
        service = get_session_token_service()
        token = service.issue_token("user-123")
        assert jwt.decode(
            token, "test-session-secret-for-testing-only", algorithms=["HS256"]
        )["sub"] == "user-123"

    def test_singleton_and_reset(self):
        first = get_session_token_service()
        assert get_session_token_service() is first
        reset_session_token_service()
        assert get_session_token_service() is not first
