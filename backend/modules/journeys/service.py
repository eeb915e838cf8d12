"""
Journey admission service implementation.

Entry point for every journey operation the API exposes. Authorization
(leader-only, members-only) is checked here; the membership transitions
live in MembershipService and the expiration cascade in
ExpirationScheduler.
"""

import asyncio
import logging
import re
import secrets
import string
import uuid
from datetime import datetime
from typing import Any, Optional

from modules.auth import IPasswordHasher
from modules.notifications import INotifier
from modules.ratelimit import IRateLimiter, build_rate_limit_key
from shared.config import get_settings
from shared.exceptions import ValidationError

from .interfaces import IJourneyAdmissionService, IJourneyRepository, IUserRepository
from .join_tokens import JoinTokenIssuer
from .membership import MembershipService
from .expiration import ExpirationScheduler
from .versioning import update_with_retry
from .models import Journey, JoinResult, LifecycleState, utcnow
from .exceptions import (
    JourneyNotFoundError,
    NotLeaderError,
    NotMemberError,
    SlugGenerationError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

SLUG_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
SLUG_SUFFIX_LENGTH = 6
SLUG_ATTEMPTS = 5


def slugify(name: str) -> str:
    """Lowercase, collapse anything that is not a letter or digit into '-'."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "journey"


class JourneyAdmissionService(IJourneyAdmissionService):
    """
    Journey admission service.

    Implements IJourneyAdmissionService over repository protocols, so the
    same code runs against Supabase and the in-memory store.
    """

    def __init__(
        self,
        journeys: IJourneyRepository,
        users: IUserRepository,
        issuer: JoinTokenIssuer,
        membership: MembershipService,
        expiration: ExpirationScheduler,
        notifier: INotifier,
        password_hasher: IPasswordHasher,
        join_limiter: Optional[IRateLimiter] = None,
        max_retries: Optional[int] = None,
    ):
        self._journeys = journeys
        self._users = users
        self._issuer = issuer
        self._membership = membership
        self._expiration = expiration
        self._notifier = notifier
        self._hasher = password_hasher
        self._join_limiter = join_limiter
        self._max_retries = (
            max_retries if max_retries is not None else get_settings().membership_update_retries
        )

    # -------------------------------------------------------------------------
    # Journeys
    # -------------------------------------------------------------------------

    async def create_journey(
        self,
        leader_id: str,
        name: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Journey:
        """Create a journey with the caller as leader and only member."""
        if await self._users.get_by_id(leader_id) is None:
            raise UserNotFoundError(leader_id)

        name = name.strip()
        if not name:
            raise ValidationError("Journey name is required", code="NAME_REQUIRED")
        if start_date and end_date and end_date < start_date:
            raise ValidationError(
                "End date must not be before start date",
                code="INVALID_DATE_RANGE",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        now = utcnow()
        journey = Journey(
            id=str(uuid.uuid4()),
            slug=await self._unique_slug(name),
            name=name,
            start_date=start_date,
            end_date=end_date,
            leader_id=leader_id,
            members=[leader_id],
            expire_at=self._expiration.initial_expiration(end_date, now),
            created_at=now,
            updated_at=now,
        )
        created = await self._journeys.create(journey)
        logger.info(f"Created journey {created.id} ({created.slug}) for leader {leader_id}")
        return created

    async def _unique_slug(self, name: str) -> str:
        base = slugify(name)
        for _ in range(SLUG_ATTEMPTS):
            suffix = "".join(secrets.choice(SLUG_SUFFIX_ALPHABET) for _ in range(SLUG_SUFFIX_LENGTH))
            slug = f"{base}-{suffix}"
            if await self._journeys.get_by_slug(slug) is None:
                return slug
        raise SlugGenerationError(name, SLUG_ATTEMPTS)

    async def get_journey(self, slug: str, user_id: str) -> Journey:
        """Look a journey up by slug (or id). Members only."""
        journey = await self._journeys.get_by_slug(slug)
        if journey is None:
            journey = await self._journeys.get_by_id(slug)
        if journey is None:
            raise JourneyNotFoundError(slug)
        if user_id not in journey.members:
            raise NotMemberError(journey.id, user_id)
        return journey

    # -------------------------------------------------------------------------
    # Join tokens
    # -------------------------------------------------------------------------

    async def generate_join_token(self, journey_id: str, user_id: str) -> str:
        journey = await self._get_or_raise(journey_id)
        if user_id not in journey.members:
            raise NotMemberError(journey_id, user_id)
        return await self._issuer.generate_join_token(journey_id)

    @property
    def join_token_ttl_seconds(self) -> int:
        return self._issuer.ttl_seconds

    async def join_journey_via_token(
        self,
        token: str,
        name: Optional[str] = None,
        password: Optional[str] = None,
        user_id: Optional[str] = None,
        client_key: Optional[str] = None,
    ) -> JoinResult:
        if self._join_limiter is not None:
            await self._join_limiter.consume(client_key or build_rate_limit_key(user_id))
        return await self._membership.redeem(
            token,
            caller_id=user_id,
            name=name,
            password=password,
        )

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    async def approve_join_request(self, journey_id: str, user_id: str, target_id: str) -> Journey:
        return await self._membership.approve(journey_id, user_id, target_id)

    async def reject_join_request(self, journey_id: str, user_id: str, target_id: str) -> Journey:
        return await self._membership.reject(journey_id, user_id, target_id)

    async def approve_all_join_requests(self, journey_id: str, user_id: str) -> Journey:
        return await self._membership.approve_all(journey_id, user_id)

    async def reject_all_join_requests(self, journey_id: str, user_id: str) -> Journey:
        return await self._membership.reject_all(journey_id, user_id)

    async def remove_member(self, journey_id: str, user_id: str, member_id: str) -> Journey:
        return await self._membership.remove_member(journey_id, user_id, member_id)

    async def leave_journey(
        self,
        journey_id: str,
        user_id: str,
        leader_timezone_offset_minutes: Optional[int] = None,
    ) -> Journey:
        """
        Leave a journey.

        When the leader leaves, the journey stays intact but is scheduled
        for deletion along with its expenses and guests. Anyone else is
        simply removed.
        """
        journey = await self._get_or_raise(journey_id)
        if not journey.is_leader(user_id):
            return await self._membership.leave(journey_id, user_id)

        if journey.lifecycle_state == LifecycleState.EXPIRING:
            return journey

        await self._expiration.on_leader_departure(journey_id, leader_timezone_offset_minutes)
        return await self._get_or_raise(journey_id)

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    async def toggle_approval_requirement(
        self,
        journey_id: str,
        user_id: str,
        require_approval: bool,
    ) -> Journey:
        return await self._leader_update(
            journey_id, user_id, "change approval settings",
            {"require_approval": require_approval},
        )

    async def toggle_journey_lock(self, journey_id: str, user_id: str, is_locked: bool) -> Journey:
        return await self._leader_update(
            journey_id, user_id, "lock the journey",
            {"is_locked": is_locked},
        )

    async def set_journey_password(
        self,
        journey_id: str,
        user_id: str,
        password: Optional[str],
    ) -> bool:
        """Set the join password, or clear it when password is empty."""
        password_hash = None
        if password:
            password_hash = await asyncio.to_thread(self._hasher.hash, password)
        await self._leader_update(
            journey_id, user_id, "set the journey password",
            {"password_hash": password_hash},
        )
        return True

    async def _leader_update(
        self,
        journey_id: str,
        user_id: str,
        action: str,
        changes: dict[str, Any],
    ) -> Journey:
        def mutate(journey: Journey) -> dict[str, Any]:
            if not journey.is_leader(user_id):
                raise NotLeaderError(journey_id, user_id, action)
            return changes

        journey, _ = await update_with_retry(
            self._journeys, journey_id, mutate, self._max_retries
        )
        logger.info(f"Leader {user_id} updated {sorted(changes)} on journey {journey_id}")
        await self._notifier.notify_journey_update(journey_id)
        return journey

    async def _get_or_raise(self, journey_id: str) -> Journey:
        journey = await self._journeys.get_by_id(journey_id)
        if journey is None:
            raise JourneyNotFoundError(journey_id)
        return journey
