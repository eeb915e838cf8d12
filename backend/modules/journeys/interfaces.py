"""
Journeys module interfaces.

The API layer depends on IJourneyAdmissionService. The service depends on
the repository protocols, which have Supabase and in-memory
implementations.
"""

from datetime import datetime
from typing import Protocol, Optional, Any, runtime_checkable

from .models import Journey, User, Expense, JoinResult


@runtime_checkable
class IJourneyRepository(Protocol):
    """
    Persistence contract for journeys.

    update_if_version() and redeem_join_token() must each be a single
    atomic conditional write: when the filter does not match they change
    nothing and return None. Both bump `version` and `updated_at`.
    """

    async def create(self, journey: Journey) -> Journey:
        ...

    async def get_by_id(self, journey_id: str) -> Optional[Journey]:
        ...

    async def get_by_slug(self, slug: str) -> Optional[Journey]:
        ...

    async def find_by_join_token(self, jti: str) -> Optional[Journey]:
        """Find the journey whose active join token is jti, in any state."""
        ...

    async def update_if_version(
        self,
        journey_id: str,
        version: int,
        changes: dict[str, Any],
    ) -> Optional[Journey]:
        """Apply changes only if the stored version still equals version."""
        ...

    async def redeem_join_token(
        self,
        journey_id: str,
        version: int,
        jti: str,
        now: datetime,
        changes: dict[str, Any],
    ) -> Optional[Journey]:
        """
        Consume the join token and apply changes in one conditional write.

        Matches only when the stored jti equals jti, the token is unused,
        its expiry is after now, and the version is unchanged. On match
        the token is marked used and its jti/expiry are cleared.
        """
        ...


@runtime_checkable
class IUserRepository(Protocol):
    """Persistence contract for users."""

    async def create(self, user: User) -> User:
        ...

    async def get_by_id(self, user_id: str) -> Optional[User]:
        ...

    async def get_many(self, user_ids: list[str]) -> list[User]:
        ...

    async def delete(self, user_id: str) -> bool:
        ...

    async def set_guest_expiration(
        self,
        user_ids: list[str],
        expire_at: Optional[datetime],
    ) -> int:
        """Set expire_at on the guests among user_ids; returns rows updated."""
        ...


@runtime_checkable
class IExpenseRepository(Protocol):
    """Persistence contract for the expense fields the cascade needs."""

    async def create(self, expense: Expense) -> Expense:
        ...

    async def list_for_journey(self, journey_id: str) -> list[Expense]:
        ...

    async def set_expiration_for_journey(
        self,
        journey_id: str,
        expire_at: Optional[datetime],
    ) -> int:
        """Set expire_at on every expense of a journey; returns rows updated."""
        ...


@runtime_checkable
class IJourneyAdmissionService(Protocol):
    """
    Interface for journey admission and lifecycle operations.

    This is the contract the transport layer calls. Every mutating
    operation takes the caller's user id except join_journey_via_token,
    which may run for an anonymous guest.
    """

    async def create_journey(
        self,
        leader_id: str,
        name: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Journey:
        ...

    async def get_journey(self, slug: str, user_id: str) -> Journey:
        ...

    @property
    def join_token_ttl_seconds(self) -> int:
        """Lifetime of newly issued join tokens."""
        ...

    async def generate_join_token(self, journey_id: str, user_id: str) -> str:
        """
        Issue a fresh join token, invalidating any earlier one.

        Raises:
            JourneyNotFoundError: If the journey does not exist
            NotMemberError: If the caller is not a member
        """
        ...

    async def join_journey_via_token(
        self,
        token: str,
        name: Optional[str] = None,
        password: Optional[str] = None,
        user_id: Optional[str] = None,
        client_key: Optional[str] = None,
    ) -> JoinResult:
        """
        Redeem a join token.

        Raises:
            TooManyRequestsError: If the join rate limit is exhausted
            InvalidOrUsedTokenError: If the token cannot be redeemed
            JourneyLockedError: If the journey is locked
            PasswordRequiredError / InvalidPasswordError: Password gate
            RejectedError: If the caller was rejected before
            NameRequiredError / NameTakenError: Guest name problems
            UserNotFoundError: If user_id does not resolve
        """
        ...

    async def approve_join_request(self, journey_id: str, user_id: str, target_id: str) -> Journey:
        ...

    async def reject_join_request(self, journey_id: str, user_id: str, target_id: str) -> Journey:
        ...

    async def approve_all_join_requests(self, journey_id: str, user_id: str) -> Journey:
        ...

    async def reject_all_join_requests(self, journey_id: str, user_id: str) -> Journey:
        ...

    async def remove_member(self, journey_id: str, user_id: str, member_id: str) -> Journey:
        ...

    async def leave_journey(
        self,
        journey_id: str,
        user_id: str,
        leader_timezone_offset_minutes: Optional[int] = None,
    ) -> Journey:
        ...

    async def toggle_approval_requirement(
        self,
        journey_id: str,
        user_id: str,
        require_approval: bool,
    ) -> Journey:
        ...

    async def toggle_journey_lock(self, journey_id: str, user_id: str, is_locked: bool) -> Journey:
        ...

    async def set_journey_password(
        self,
        journey_id: str,
        user_id: str,
        password: Optional[str],
    ) -> bool:
        ...
