"""
Journeys module.

Handles journey creation, join-token admission, membership management
and the expiration lifecycle of journeys and their dependents.

Public API:
- IJourneyAdmissionService: Interface for journey operations
- JourneyAdmissionService: Implementation over repository protocols
- Repository protocols and their Supabase / in-memory implementations
- Journey models and exceptions
"""

from .interfaces import (
    IJourneyAdmissionService,
    IJourneyRepository,
    IUserRepository,
    IExpenseRepository,
)
from .models import (
    Journey,
    JourneyView,
    JourneyStatus,
    MembershipState,
    LifecycleState,
    User,
    Expense,
    JoinResult,
    JoinTokenClaims,
)
from .service import JourneyAdmissionService
from .membership import MembershipService
from .expiration import ExpirationScheduler, compute_departure_deletion_time
from .join_tokens import JoinTokenIssuer
from .exceptions import (
    JourneyError,
    JourneyNotFoundError,
    UserNotFoundError,
    InvalidOrUsedTokenError,
    PasswordRequiredError,
    InvalidPasswordError,
    JourneyLockedError,
    RejectedError,
    NotLeaderError,
    NotMemberError,
    CannotRemoveLeaderError,
    NameRequiredError,
    NameTakenError,
    ConcurrentUpdateError,
    SlugGenerationError,
)

__all__ = [
    # Interfaces
    "IJourneyAdmissionService",
    "IJourneyRepository",
    "IUserRepository",
    "IExpenseRepository",
    # Models
    "Journey",
    "JourneyView",
    "JourneyStatus",
    "MembershipState",
    "LifecycleState",
    "User",
    "Expense",
    "JoinResult",
    "JoinTokenClaims",
    # Services
    "JourneyAdmissionService",
    "MembershipService",
    "ExpirationScheduler",
    "compute_departure_deletion_time",
    "JoinTokenIssuer",
    # Exceptions
    "JourneyError",
    "JourneyNotFoundError",
    "UserNotFoundError",
    "InvalidOrUsedTokenError",
    "PasswordRequiredError",
    "InvalidPasswordError",
    "JourneyLockedError",
    "RejectedError",
    "NotLeaderError",
    "NotMemberError",
    "CannotRemoveLeaderError",
    "NameRequiredError",
    "NameTakenError",
    "ConcurrentUpdateError",
    "SlugGenerationError",
]
