"""
Journeys module data models.

These models define the journey aggregate, its members, and the request
and response shapes of the admission API.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class JourneyStatus(str, Enum):
    """Journey trip status."""

    ACTIVE = "active"
    COMPLETE = "complete"


class MembershipState(str, Enum):
    """Where a user stands with respect to one journey."""

    NOT_MEMBER = "not_member"
    PENDING = "pending"      # Waiting for host approval
    MEMBER = "member"
    REJECTED = "rejected"    # Host declined; retries fail loudly


class LifecycleState(str, Enum):
    """Temporal lifecycle of a journey."""

    ACTIVE = "active"                  # No expiration scheduled
    ACTIVE_SLIDING = "active_sliding"  # Expires unless activity pushes it forward
    EXPIRING = "expiring"              # Leader left; deletion is scheduled


class User(BaseModel):
    """A user record. Guests are ephemeral and tied to one journey."""

    id: str = Field(..., description="User ID (UUID)")
    name: str = Field(..., min_length=1, description="Display name")
    email: Optional[str] = Field(None, description="Email, unique when present")
    is_guest: bool = Field(default=False, description="Ephemeral guest identity")
    expire_at: Optional[datetime] = Field(None, description="TTL for guests of expiring journeys")
    created_at: datetime = Field(default_factory=utcnow)


class Expense(BaseModel):
    """
    An expense recorded against a journey.

    Only the fields the expiration cascade touches are modeled here.
    """

    id: str = Field(..., description="Expense ID (UUID)")
    journey_id: str = Field(..., description="Parent journey ID")
    payer_id: str = Field(..., description="User who paid")
    total_amount: float = Field(default=0, ge=0)
    description: str = Field(default="")
    expire_at: Optional[datetime] = Field(None)
    created_at: datetime = Field(default_factory=utcnow)


class Journey(BaseModel):
    """
    The journey aggregate root.

    The three membership lists are kept pairwise disjoint and the leader
    is always in `members`. `version` is bumped by every write and is the
    compare-and-set token for concurrent membership changes.
    """

    id: str = Field(..., description="Journey ID (UUID)")
    slug: str = Field(..., description="Globally unique human-readable slug")
    name: str = Field(..., min_length=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: JourneyStatus = JourneyStatus.ACTIVE

    is_locked: bool = Field(default=False, description="Blocks new admissions")
    is_input_locked: bool = Field(default=False, description="Blocks expense mutation")
    require_approval: bool = Field(default=False, description="Queue joiners for host approval")
    password_hash: Optional[str] = Field(None, description="bcrypt hash of the join password")

    leader_id: str = Field(..., description="Owning user ID")
    members: list[str] = Field(default_factory=list)
    pending_members: list[str] = Field(default_factory=list)
    rejected_members: list[str] = Field(default_factory=list)

    # Single active join token
    join_token_jti: Optional[str] = None
    join_token_expires_at: Optional[datetime] = None
    join_token_used: bool = False

    expire_at: Optional[datetime] = None
    leader_left_at: Optional[datetime] = None

    version: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    def is_leader(self, user_id: str) -> bool:
        return self.leader_id == user_id

    def membership_state(self, user_id: str) -> MembershipState:
        """Classify a user against the membership lists."""
        if user_id in self.members:
            return MembershipState.MEMBER
        if user_id in self.pending_members:
            return MembershipState.PENDING
        if user_id in self.rejected_members:
            return MembershipState.REJECTED
        return MembershipState.NOT_MEMBER

    def has_live_join_token(self, jti: str, now: datetime) -> bool:
        """Whether jti is the active, unused, unexpired join token."""
        return (
            self.join_token_jti is not None
            and self.join_token_jti == jti
            and not self.join_token_used
            and self.join_token_expires_at is not None
            and self.join_token_expires_at > now
        )

    @property
    def lifecycle_state(self) -> LifecycleState:
        if self.leader_left_at is not None:
            return LifecycleState.EXPIRING
        if self.expire_at is not None:
            return LifecycleState.ACTIVE_SLIDING
        return LifecycleState.ACTIVE


class JoinTokenClaims(BaseModel):
    """A join token resolved to its jti, from either transport encoding."""

    jti: str = Field(..., min_length=1)
    journey_id: Optional[str] = Field(None, description="Present for signed tokens")
    signed: bool = Field(default=False, description="Decoded from a verified signed token")

    model_config = {"frozen": True}


class JourneyView(BaseModel):
    """Client-facing projection of a journey (no secrets, no token state)."""

    id: str
    slug: str
    name: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: JourneyStatus
    is_locked: bool
    is_input_locked: bool
    require_approval: bool
    has_password: bool
    leader_id: str
    members: list[str]
    pending_members: list[str]
    rejected_members: list[str]
    expire_at: Optional[datetime] = None

    @classmethod
    def from_journey(cls, journey: Journey) -> "JourneyView":
        return cls(
            id=journey.id,
            slug=journey.slug,
            name=journey.name,
            start_date=journey.start_date,
            end_date=journey.end_date,
            status=journey.status,
            is_locked=journey.is_locked,
            is_input_locked=journey.is_input_locked,
            require_approval=journey.require_approval,
            has_password=journey.has_password,
            leader_id=journey.leader_id,
            members=list(journey.members),
            pending_members=list(journey.pending_members),
            rejected_members=list(journey.rejected_members),
            expire_at=journey.expire_at,
        )


class JoinResult(BaseModel):
    """Outcome of redeeming a join token."""

    token: str = Field(..., description="Session token bound to the user")
    user: User
    journey_id: str
    journey_slug: str
    admitted: bool = Field(..., description="User is a full member")
    is_pending: bool = Field(..., description="User is waiting for approval")


# -----------------------------------------------------------------------------
# Request/response models for the HTTP layer
# -----------------------------------------------------------------------------


class CreateJourneyRequest(BaseModel):
    """Request to create a journey led by the caller."""

    name: str = Field(..., min_length=1, max_length=200)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class JoinViaTokenRequest(BaseModel):
    """Redeem a join token (signed token or bare jti)."""

    token: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, max_length=100, description="Required for guests")
    password: Optional[str] = None


class JoinTokenResponse(BaseModel):
    """A freshly issued join token."""

    token: str
    expires_in: int = Field(..., description="Seconds until the token expires")


class MemberActionRequest(BaseModel):
    """Target a single user in a leader-only membership action."""

    user_id: str = Field(..., min_length=1)


class LeaveJourneyRequest(BaseModel):
    """Leave a journey; the offset only matters when the leader leaves."""

    leader_timezone_offset_minutes: Optional[int] = Field(
        None,
        description="Leader's local offset from UTC in minutes (east positive)",
    )


class ApprovalToggleRequest(BaseModel):
    require_approval: bool


class LockToggleRequest(BaseModel):
    is_locked: bool


class SetPasswordRequest(BaseModel):
    """Set a join password, or clear it with null/empty."""

    password: Optional[str] = Field(None, max_length=200)
