"""
Authentication module interface.

Other modules should depend on these protocols, not the concrete
implementations. This enables testing with mocks.
"""

from typing import Protocol, Optional, runtime_checkable

from shared.models import AuthenticatedUser


@runtime_checkable
class ISessionTokenService(Protocol):
    """
    Interface for session credential operations.

    A session credential is the long-lived bearer token bound to a user
    id. It lets a client that already redeemed a join token retry without
    presenting the join token's identity again.
    """

    def issue_token(
        self,
        user_id: str,
        is_guest: bool = False,
        email: Optional[str] = None,
        expires_in: Optional[int] = None,
    ) -> str:
        """
        Sign a session token for a user.

        Args:
            user_id: ID of the user the token is bound to
            is_guest: Whether the user is an ephemeral guest
            email: Optional email claim
            expires_in: Lifetime in seconds, overriding the configured TTL

        Returns:
            Encoded token string
        """
        ...

    async def validate_token(self, token: str) -> AuthenticatedUser:
        """
        Validate a session token and return the authenticated user.

        Raises:
            MissingTokenError: If token is empty
            ExpiredTokenError: If token has expired
            InvalidTokenError: If token is malformed or badly signed
        """
        ...


@runtime_checkable
class IPasswordHasher(Protocol):
    """Interface for hashing and checking journey passwords."""

    def hash(self, password: str) -> str:
        """Return a salted hash of the password."""
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        """Return True when the password matches the stored hash."""
        ...
