"""
Base exception classes for the Tripsplit backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class TripsplitError(Exception):
    """
    Base exception for all Tripsplit errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(TripsplitError):
    """Resource not found."""

    pass


class ValidationError(TripsplitError):
    """Input validation failed."""

    pass


class AuthenticationError(TripsplitError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class AuthorizationError(TripsplitError):
    """Authorization failed (insufficient permissions)."""

    pass


class ConflictError(TripsplitError):
    """The request conflicts with the current state of a resource."""

    pass


class RateLimitError(TripsplitError):
    """Too many requests for a rate-limited operation."""

    pass


class ExternalServiceError(TripsplitError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
