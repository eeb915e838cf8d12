"""
Authentication service implementation.

Signs and validates the session tokens handed out by the admission flow.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt

from shared.config import get_settings
from shared.models import AuthenticatedUser

from .interfaces import ISessionTokenService
from .models import SessionClaims
from .exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
)


class SessionTokenService(ISessionTokenService):
    """
    Implementation of the session token service.

    Tokens are HMAC-signed JWTs carrying the user id as `sub`. The
    `userId` claim is kept alongside `sub` for clients that read it.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        ttl_days: Optional[int] = None,
        algorithm: Optional[str] = None,
    ):
        settings = get_settings()
        self._secret = secret if secret is not None else settings.session_jwt_secret
        self._ttl = timedelta(days=ttl_days if ttl_days is not None else settings.session_token_ttl_days)
        self._algorithm = algorithm or settings.jwt_algorithm

    def issue_token(
        self,
        user_id: str,
        is_guest: bool = False,
        email: Optional[str] = None,
        expires_in: Optional[int] = None,
    ) -> str:
        """Sign a session token bound to the given user id."""
        if not self._secret:
            raise RuntimeError("SESSION_JWT_SECRET is not configured")

        now = datetime.now(timezone.utc)
        ttl = timedelta(seconds=expires_in) if expires_in is not None else self._ttl
        payload = {
            "sub": user_id,
            "userId": user_id,
            "isGuest": is_guest,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        if email:
            payload["email"] = email

        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    async def validate_token(self, token: str) -> AuthenticatedUser:
        """Validate a session token and return the authenticated user."""
        if not token:
            raise MissingTokenError()

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(str(e))

        claims = SessionClaims(**payload)
        return AuthenticatedUser(
            id=claims.sub,
            email=claims.email,
            is_guest=claims.is_guest,
            issued_at=datetime.fromtimestamp(claims.iat, tz=timezone.utc),
        )


# Module-level instance getter
_service_instance: Optional[SessionTokenService] = None


def get_session_token_service() -> SessionTokenService:
    """Get the session token service singleton."""
    global _service_instance
    if _service_instance is None:
        _service_instance = SessionTokenService()
    return _service_instance


def reset_session_token_service() -> None:
    """Reset the session token service singleton (for testing)."""
    global _service_instance
    _service_instance = None
