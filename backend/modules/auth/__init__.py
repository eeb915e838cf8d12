"""
Authentication module.

Handles session token signing/validation and journey password hashing.

Public API:
- ISessionTokenService: Interface for session token operations
- IPasswordHasher: Interface for password hashing
- SessionClaims: Decoded session token payload
- Auth exceptions: InvalidTokenError, ExpiredTokenError, MissingTokenError
"""

from .interfaces import ISessionTokenService, IPasswordHasher
from .models import SessionClaims
from .exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
)

__all__ = [
    # Interfaces
    "ISessionTokenService",
    "IPasswordHasher",
    # Models
    "SessionClaims",
    # Exceptions
    "InvalidTokenError",
    "ExpiredTokenError",
    "MissingTokenError",
]
