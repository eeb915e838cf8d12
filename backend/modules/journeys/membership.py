"""
Journey membership state machine.

Per (journey, user):

    NOT_MEMBER --join--> MEMBER                  (no approval required)
    NOT_MEMBER --join--> PENDING --approve--> MEMBER
                         PENDING --reject---> REJECTED

REJECTED is absorbing as far as joining goes. The transition functions
below are pure: they take a journey snapshot and return the list
change-set to write, or None when the transition is a no-op. Every
change-set keeps the three lists disjoint.
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Optional

from modules.auth import ISessionTokenService, IPasswordHasher
from modules.notifications import INotifier
from shared.config import get_settings

from .interfaces import IJourneyRepository, IUserRepository
from .join_tokens import JoinTokenIssuer
from .expiration import ExpirationScheduler
from .versioning import update_with_retry
from .models import (
    Journey,
    JoinResult,
    JoinTokenClaims,
    LifecycleState,
    MembershipState,
    User,
    utcnow,
)
from .exceptions import (
    CannotRemoveLeaderError,
    ConcurrentUpdateError,
    InvalidOrUsedTokenError,
    InvalidPasswordError,
    JourneyLockedError,
    NameRequiredError,
    NameTakenError,
    NotLeaderError,
    PasswordRequiredError,
    RejectedError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

ChangeSet = dict[str, Any]


def _without(ids: list[str], user_id: str) -> list[str]:
    return [i for i in ids if i != user_id]


def _with(ids: list[str], user_id: str) -> list[str]:
    return ids if user_id in ids else [*ids, user_id]


# -----------------------------------------------------------------------------
# Pure transitions
# -----------------------------------------------------------------------------


def admit(journey: Journey, user_id: str) -> Optional[ChangeSet]:
    """NOT_MEMBER -> MEMBER."""
    if user_id in journey.members:
        return None
    return {
        "members": _with(journey.members, user_id),
        "pending_members": _without(journey.pending_members, user_id),
        "rejected_members": _without(journey.rejected_members, user_id),
    }


def enqueue(journey: Journey, user_id: str) -> Optional[ChangeSet]:
    """NOT_MEMBER -> PENDING."""
    if user_id in journey.members or user_id in journey.pending_members:
        return None
    return {
        "pending_members": _with(journey.pending_members, user_id),
        "rejected_members": _without(journey.rejected_members, user_id),
    }


def approve(journey: Journey, user_id: str) -> Optional[ChangeSet]:
    """PENDING -> MEMBER. Anyone not pending is left alone."""
    if user_id not in journey.pending_members:
        return None
    return admit(journey, user_id)


def reject(journey: Journey, user_id: str) -> Optional[ChangeSet]:
    """PENDING -> REJECTED. Anyone not pending is left alone."""
    if user_id not in journey.pending_members:
        return None
    return {
        "members": _without(journey.members, user_id),
        "pending_members": _without(journey.pending_members, user_id),
        "rejected_members": _with(journey.rejected_members, user_id),
    }


def approve_all(journey: Journey) -> Optional[ChangeSet]:
    if not journey.pending_members:
        return None
    members = list(journey.members)
    for user_id in journey.pending_members:
        members = _with(members, user_id)
    return {
        "members": members,
        "pending_members": [],
        "rejected_members": [r for r in journey.rejected_members if r not in members],
    }


def reject_all(journey: Journey) -> Optional[ChangeSet]:
    if not journey.pending_members:
        return None
    rejected = list(journey.rejected_members)
    for user_id in journey.pending_members:
        rejected = _with(rejected, user_id)
    return {
        "members": [m for m in journey.members if m not in rejected],
        "pending_members": [],
        "rejected_members": rejected,
    }


def remove(journey: Journey, user_id: str) -> Optional[ChangeSet]:
    """MEMBER or PENDING -> NOT_MEMBER."""
    if user_id not in journey.members and user_id not in journey.pending_members:
        return None
    return {
        "members": _without(journey.members, user_id),
        "pending_members": _without(journey.pending_members, user_id),
    }


# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------


class MembershipService:
    """
    Applies membership transitions to stored journeys.

    Token redemption consumes the join token and records the membership
    change in the same conditional write. Every other transition is a
    version compare-and-set retried on conflict.
    """

    def __init__(
        self,
        journeys: IJourneyRepository,
        users: IUserRepository,
        issuer: JoinTokenIssuer,
        sessions: ISessionTokenService,
        notifier: INotifier,
        expiration: ExpirationScheduler,
        password_hasher: IPasswordHasher,
        max_retries: Optional[int] = None,
    ):
        self._journeys = journeys
        self._users = users
        self._issuer = issuer
        self._sessions = sessions
        self._notifier = notifier
        self._expiration = expiration
        self._hasher = password_hasher
        self._max_retries = (
            max_retries if max_retries is not None else get_settings().membership_update_retries
        )

    # -------------------------------------------------------------------------
    # Redemption
    # -------------------------------------------------------------------------

    async def redeem(
        self,
        token: str,
        caller_id: Optional[str] = None,
        name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> JoinResult:
        """
        Redeem a join token for the caller, or for a new guest.

        A caller who is already a member or pending gets a fresh session
        credential and nothing else changes. This holds when their
        earlier attempt already consumed the token, provided they present
        the same signed token. The lock and password gates still apply.
        """
        claims = self._issuer.decode_token(token)
        journey = await self._load_journey(claims)
        if journey is None:
            raise InvalidOrUsedTokenError()

        caller: Optional[User] = None
        if caller_id:
            caller = await self._users.get_by_id(caller_id)
            if caller is None:
                raise UserNotFoundError(caller_id)

        token_live = journey.has_live_join_token(claims.jti, utcnow())

        reentry: Optional[MembershipState] = None
        if caller is not None:
            state = journey.membership_state(caller.id)
            if state in (MembershipState.MEMBER, MembershipState.PENDING) and (
                token_live or claims.signed
            ):
                reentry = state

        if not token_live and reentry is None:
            raise InvalidOrUsedTokenError()

        if journey.is_locked:
            raise JourneyLockedError(journey.id)

        await self._check_password(journey, password)

        if reentry is not None:
            logger.info(f"User {caller.id} re-entered journey {journey.id} as {reentry.value}")
            return self._build_result(journey, caller, reentry)

        created_guest = False
        if caller is not None:
            if journey.membership_state(caller.id) == MembershipState.REJECTED:
                raise RejectedError(journey.id, caller.id)
        else:
            caller = await self._create_guest(journey, name)
            created_guest = True

        try:
            journey, state = await self._consume(journey, claims, caller)
        except (InvalidOrUsedTokenError, ConcurrentUpdateError):
            if created_guest:
                await self._users.delete(caller.id)
                logger.info(f"Deleted guest {caller.id} after losing redemption of journey {journey.id}")
            raise

        logger.info(f"User {caller.id} joined journey {journey.id} as {state.value}")
        await self._notifier.notify_journey_update(journey.id)
        if state == MembershipState.MEMBER:
            await self._expiration.refresh_on_activity(journey.id)

        return self._build_result(journey, caller, state)

    async def _load_journey(self, claims: JoinTokenClaims) -> Optional[Journey]:
        if claims.journey_id:
            return await self._journeys.get_by_id(claims.journey_id)
        return await self._journeys.find_by_join_token(claims.jti)

    async def _check_password(self, journey: Journey, password: Optional[str]) -> None:
        if not journey.has_password:
            return
        if not password:
            raise PasswordRequiredError(journey.id)
        matches = await asyncio.to_thread(self._hasher.verify, password, journey.password_hash)
        if not matches:
            raise InvalidPasswordError(journey.id)

    async def _create_guest(self, journey: Journey, name: Optional[str]) -> User:
        display_name = (name or "").strip()
        if not display_name:
            raise NameRequiredError()

        wanted = display_name.casefold()
        existing = await self._users.get_many([*journey.members, *journey.pending_members])
        if any(user.name.strip().casefold() == wanted for user in existing):
            raise NameTakenError(journey.id, display_name)

        guest = await self._users.create(
            User(
                id=str(uuid.uuid4()),
                name=display_name,
                is_guest=True,
                expire_at=journey.expire_at,
            )
        )
        logger.debug(f"Created guest {guest.id} for journey {journey.id}")
        return guest

    async def _consume(
        self,
        journey: Journey,
        claims: JoinTokenClaims,
        user: User,
    ) -> tuple[Journey, MembershipState]:
        """Consume the token and record the membership in one write."""
        for attempt in range(1, self._max_retries + 1):
            if journey.require_approval:
                state = MembershipState.PENDING
                changes = enqueue(journey, user.id)
            else:
                state = MembershipState.MEMBER
                changes = admit(journey, user.id)

            updated = await self._journeys.redeem_join_token(
                journey.id,
                journey.version,
                claims.jti,
                utcnow(),
                changes or {},
            )
            if updated is not None:
                return updated, state

            latest = await self._journeys.get_by_id(journey.id)
            if latest is None or not latest.has_live_join_token(claims.jti, utcnow()):
                raise InvalidOrUsedTokenError()
            logger.debug(
                f"Journey {journey.id} changed during redemption "
                f"(attempt {attempt}/{self._max_retries}); retrying"
            )
            journey = latest

        raise ConcurrentUpdateError(journey.id, self._max_retries)

    def _build_result(self, journey: Journey, user: User, state: MembershipState) -> JoinResult:
        expires_in = None
        if user.is_guest and journey.lifecycle_state == LifecycleState.EXPIRING:
            # guests are deleted with the journey
            expires_in = self._expiration.session_ttl(journey)
        token = self._sessions.issue_token(
            user.id,
            is_guest=user.is_guest,
            email=user.email,
            expires_in=expires_in,
        )
        return JoinResult(
            token=token,
            user=user,
            journey_id=journey.id,
            journey_slug=journey.slug,
            admitted=state == MembershipState.MEMBER,
            is_pending=state == MembershipState.PENDING,
        )

    # -------------------------------------------------------------------------
    # Leader actions
    # -------------------------------------------------------------------------

    async def approve(self, journey_id: str, actor_id: str, user_id: str) -> Journey:
        """Move a pending user into members. Non-pending users are a no-op."""
        admitted: list[str] = []

        def transition(journey: Journey) -> Optional[ChangeSet]:
            admitted[:] = [user_id] if user_id in journey.pending_members else []
            return approve(journey, user_id)

        journey = await self._leader_transition(
            journey_id, actor_id, "approve join requests", transition,
        )
        await self._stamp_admitted_guests(journey_id, admitted)
        return journey

    async def reject(self, journey_id: str, actor_id: str, user_id: str) -> Journey:
        """Move a pending user into rejected. Non-pending users are a no-op."""
        return await self._leader_transition(
            journey_id, actor_id, "reject join requests",
            lambda j: reject(j, user_id),
        )

    async def approve_all(self, journey_id: str, actor_id: str) -> Journey:
        admitted: list[str] = []

        def transition(journey: Journey) -> Optional[ChangeSet]:
            admitted[:] = journey.pending_members
            return approve_all(journey)

        journey = await self._leader_transition(
            journey_id, actor_id, "approve join requests", transition,
        )
        await self._stamp_admitted_guests(journey_id, admitted)
        return journey

    async def reject_all(self, journey_id: str, actor_id: str) -> Journey:
        return await self._leader_transition(
            journey_id, actor_id, "reject join requests", reject_all,
        )

    async def remove_member(self, journey_id: str, actor_id: str, member_id: str) -> Journey:
        """
        Remove a member or pending user. Their user record is kept.

        Raises:
            NotLeaderError: If the actor is not the leader
            CannotRemoveLeaderError: If the target is the leader
        """
        def mutate(journey: Journey) -> Optional[ChangeSet]:
            if journey.is_leader(member_id):
                raise CannotRemoveLeaderError(journey.id)
            return remove(journey, member_id)

        return await self._leader_transition(journey_id, actor_id, "remove members", mutate)

    async def _leader_transition(
        self,
        journey_id: str,
        actor_id: str,
        action: str,
        transition: Callable[[Journey], Optional[ChangeSet]],
    ) -> Journey:
        def mutate(journey: Journey) -> Optional[ChangeSet]:
            if not journey.is_leader(actor_id):
                raise NotLeaderError(journey.id, actor_id, action)
            return transition(journey)

        journey, written = await update_with_retry(
            self._journeys, journey_id, mutate, self._max_retries
        )
        if written:
            logger.info(f"Leader {actor_id} did '{action}' on journey {journey_id}")
            await self._notifier.notify_journey_update(journey_id)
        return journey

    async def _stamp_admitted_guests(self, journey_id: str, user_ids: list[str]) -> None:
        """Bring guests approved out of the queue up to the journey's current expiry."""
        if not user_ids:
            return
        journey = await self._journeys.get_by_id(journey_id)
        if journey is None or journey.expire_at is None:
            return
        await self._users.set_guest_expiration(user_ids, journey.expire_at)

    # -------------------------------------------------------------------------
    # Self-service
    # -------------------------------------------------------------------------

    async def leave(self, journey_id: str, user_id: str) -> Journey:
        """
        Leave a journey as a non-leader.

        A departing guest's user record is deleted. Leaving a journey you
        are not in changes nothing.
        """
        def mutate(journey: Journey) -> Optional[ChangeSet]:
            if journey.is_leader(user_id):
                raise CannotRemoveLeaderError(journey.id)
            return remove(journey, user_id)

        journey, written = await update_with_retry(
            self._journeys, journey_id, mutate, self._max_retries
        )
        if not written:
            return journey

        user = await self._users.get_by_id(user_id)
        if user is not None and user.is_guest:
            await self._users.delete(user_id)
            logger.info(f"Deleted guest {user_id} after leaving journey {journey_id}")

        logger.info(f"User {user_id} left journey {journey_id}")
        await self._notifier.notify_journey_update(journey_id)
        return journey
