"""
Expiration scheduling for journeys and their dependents.

Journeys, their expenses and their guest users all carry an `expire_at`
timestamp that the database's TTL cleanup acts on. This module decides
that timestamp and writes it to all three in one cascade.

- Fixed schedule: a journey with an end date expires 5 days after it.
- Sliding window: a journey without one expires 5 days after the last
  activity.
- Leader departure: the journey is deleted a few hours after the leader
  leaves, and is never refreshed again.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from shared.config import get_settings

from modules.notifications import INotifier

from .interfaces import IJourneyRepository, IUserRepository, IExpenseRepository
from .models import Journey, LifecycleState, utcnow
from .versioning import update_with_retry

logger = logging.getLogger(__name__)


def compute_departure_deletion_time(
    now: datetime,
    offset_minutes: Optional[int] = None,
    grace: timedelta = timedelta(hours=3),
    min_offset_minutes: int = -12 * 60,
    max_offset_minutes: int = 14 * 60,
) -> datetime:
    """
    Deletion time for a journey whose leader just left.

    The leader's timezone offset is clamped into the valid range and
    added to the grace period. The result is therefore not "3 hours in
    the leader's local time"; clients have always relied on this shift.
    """
    deletion_time = now + grace
    if offset_minutes is not None:
        clamped = max(min_offset_minutes, min(offset_minutes, max_offset_minutes))
        deletion_time += timedelta(minutes=clamped)
    return deletion_time


class ExpirationScheduler:
    """Computes and cascades journey expiration timestamps."""

    def __init__(
        self,
        journeys: IJourneyRepository,
        users: IUserRepository,
        expenses: IExpenseRepository,
        notifier: INotifier,
        max_retries: Optional[int] = None,
    ):
        settings = get_settings()
        self._journeys = journeys
        self._users = users
        self._expenses = expenses
        self._notifier = notifier
        self._max_retries = (
            max_retries if max_retries is not None else settings.membership_update_retries
        )
        self._window = timedelta(days=settings.inactivity_window_days)
        self._grace = timedelta(hours=settings.leader_departure_grace_hours)
        self._session_ttl_default = timedelta(days=settings.session_token_ttl_days)
        self._min_offset = settings.min_timezone_offset_minutes
        self._max_offset = settings.max_timezone_offset_minutes

    def initial_expiration(self, end_date: Optional[datetime], now: Optional[datetime] = None) -> datetime:
        """Expiration for a newly created journey."""
        return (end_date or now or utcnow()) + self._window

    def session_ttl(self, journey: Journey, now: Optional[datetime] = None) -> int:
        """Seconds until the journey expires; the session default if it has no expiry."""
        if journey.expire_at is None:
            return int(self._session_ttl_default.total_seconds())
        remaining = (journey.expire_at - (now or utcnow())).total_seconds()
        return max(0, int(remaining))

    async def on_leader_departure(
        self,
        journey_id: str,
        leader_timezone_offset_minutes: Optional[int] = None,
    ) -> datetime:
        """
        Schedule deletion of a journey whose leader has left.

        Returns:
            The deletion time written to the journey and its dependents.

        Raises:
            JourneyNotFoundError: If the journey does not exist
        """
        now = utcnow()
        deletion_time = compute_departure_deletion_time(
            now,
            leader_timezone_offset_minutes,
            grace=self._grace,
            min_offset_minutes=self._min_offset,
            max_offset_minutes=self._max_offset,
        )

        journey, _ = await update_with_retry(
            self._journeys,
            journey_id,
            lambda j: {"expire_at": deletion_time, "leader_left_at": now},
            self._max_retries,
        )
        await self._cascade(journey, deletion_time)

        logger.info(f"Leader left journey {journey_id}; deletion scheduled for {deletion_time.isoformat()}")
        await self._notifier.notify_journey_update(journey_id)
        return deletion_time

    async def refresh_on_activity(self, journey_id: str) -> Optional[datetime]:
        """
        Push the expiration forward after activity on a journey.

        Returns:
            The journey's expiration after the refresh, or None if the
            journey does not exist.
        """
        journey = await self._journeys.get_by_id(journey_id)
        if journey is None:
            return None
        if journey.lifecycle_state == LifecycleState.EXPIRING:
            return journey.expire_at

        if journey.end_date is not None:
            target = journey.end_date + self._window
        else:
            target = utcnow() + self._window

        def mutate(current: Journey):
            if current.lifecycle_state == LifecycleState.EXPIRING:
                return None
            if current.expire_at == target:
                return None
            return {"expire_at": target}

        journey, written = await update_with_retry(
            self._journeys, journey_id, mutate, self._max_retries
        )
        if not written:
            return journey.expire_at

        await self._cascade(journey, target)
        return target

    async def _cascade(self, journey: Journey, expire_at: datetime) -> None:
        """Stamp expire_at on the journey's expenses and guest members."""
        expenses = await self._expenses.set_expiration_for_journey(journey.id, expire_at)
        guests = await self._users.set_guest_expiration(list(journey.members), expire_at)
        logger.debug(
            f"Cascaded expiration {expire_at.isoformat()} for journey {journey.id}: "
            f"{expenses} expenses, {guests} guests"
        )
