"""
Journeys module exceptions.

Every admission outcome that is not a success has its own class and a
stable `code`; clients branch on the code, never on message text.
"""

from shared.exceptions import (
    TripsplitError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
)


class JourneyError(TripsplitError):
    """Base exception for journey-related errors."""

    pass


class JourneyNotFoundError(NotFoundError):
    """Raised when a journey id or slug does not resolve."""

    def __init__(self, journey_id: str):
        super().__init__(
            f"Journey not found: {journey_id}",
            code="JOURNEY_NOT_FOUND",
            details={"journey_id": journey_id},
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user id does not resolve."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User not found: {user_id}",
            code="USER_NOT_FOUND",
            details={"user_id": user_id},
        )


class InvalidOrUsedTokenError(AuthenticationError):
    """
    Raised when a join token cannot be redeemed.

    Covers malformed, expired, superseded and already-redeemed tokens, and
    the losers of a concurrent redemption race.
    """

    def __init__(self, message: str = "Invalid or expired join token"):
        super().__init__(message, code="INVALID_OR_USED_TOKEN")


class PasswordRequiredError(AuthenticationError):
    """Raised when a password-gated journey is joined without a password."""

    def __init__(self, journey_id: str):
        super().__init__(
            "This journey requires a password",
            code="PASSWORD_REQUIRED",
            details={"journey_id": journey_id},
        )


class InvalidPasswordError(AuthenticationError):
    """Raised when the supplied journey password is wrong."""

    def __init__(self, journey_id: str):
        super().__init__(
            "Incorrect journey password",
            code="INVALID_PASSWORD",
            details={"journey_id": journey_id},
        )


class JourneyLockedError(AuthorizationError):
    """Raised when a locked journey receives a join attempt."""

    def __init__(self, journey_id: str):
        super().__init__(
            "This journey is not accepting new members",
            code="JOURNEY_LOCKED",
            details={"journey_id": journey_id},
        )


class RejectedError(AuthorizationError):
    """Raised when a previously rejected user tries to join again."""

    def __init__(self, journey_id: str, user_id: str):
        super().__init__(
            "Your request to join this journey was declined",
            code="REJECTED",
            details={"journey_id": journey_id, "user_id": user_id},
        )


class NotLeaderError(AuthorizationError):
    """Raised when a non-leader attempts a leader-only action."""

    def __init__(self, journey_id: str, user_id: str, action: str):
        super().__init__(
            f"Only the journey leader can {action}",
            code="UNAUTHORIZED",
            details={"journey_id": journey_id, "user_id": user_id, "action": action},
        )


class NotMemberError(AuthorizationError):
    """Raised when a non-member accesses a members-only operation."""

    def __init__(self, journey_id: str, user_id: str):
        super().__init__(
            "You are not a member of this journey",
            code="UNAUTHORIZED",
            details={"journey_id": journey_id, "user_id": user_id},
        )


class CannotRemoveLeaderError(ValidationError):
    """Raised when the leader is targeted by the member-removal path."""

    def __init__(self, journey_id: str):
        super().__init__(
            "The journey leader cannot be removed",
            code="CANNOT_REMOVE_LEADER",
            details={"journey_id": journey_id},
        )


class NameRequiredError(ValidationError):
    """Raised when a guest joins without a display name."""

    def __init__(self):
        super().__init__("Name is required for guest access", code="NAME_REQUIRED")


class NameTakenError(ConflictError):
    """Raised when a guest name collides with a member or pending user."""

    def __init__(self, journey_id: str, name: str):
        super().__init__(
            f"The name '{name}' is already taken in this journey",
            code="NAME_TAKEN",
            details={"journey_id": journey_id, "name": name},
        )


class ConcurrentUpdateError(ConflictError):
    """Raised when a journey keeps changing underneath a write."""

    def __init__(self, journey_id: str, attempts: int):
        super().__init__(
            f"Journey {journey_id} changed concurrently, gave up after {attempts} attempts",
            code="CONCURRENT_UPDATE",
            details={"journey_id": journey_id, "attempts": attempts},
        )


class SlugGenerationError(JourneyError):
    """Raised when no unique slug could be generated."""

    def __init__(self, name: str, attempts: int):
        super().__init__(
            f"Failed to generate a unique slug for '{name}' after {attempts} attempts",
            code="SLUG_GENERATION_FAILED",
            details={"name": name, "attempts": attempts},
        )
