"""
In-memory repositories.

Used by the test suite and for running the API without a database. Each
repository guards its dict with an asyncio.Lock, so every method is
atomic with respect to other coroutines on the same event loop, and hands
out deep copies so callers never alias stored state.
"""

import asyncio
from datetime import datetime
from typing import Optional, Any

from .models import Expense, Journey, User, utcnow


class InMemoryJourneyRepository:
    """Dict-backed IJourneyRepository."""

    def __init__(self) -> None:
        self._journeys: dict[str, Journey] = {}
        self._lock = asyncio.Lock()

    async def create(self, journey: Journey) -> Journey:
        async with self._lock:
            if journey.id in self._journeys:
                raise ValueError(f"Duplicate journey id: {journey.id}")
            if any(j.slug == journey.slug for j in self._journeys.values()):
                raise ValueError(f"Duplicate journey slug: {journey.slug}")
            self._journeys[journey.id] = journey.model_copy(deep=True)
            return journey.model_copy(deep=True)

    async def get_by_id(self, journey_id: str) -> Optional[Journey]:
        async with self._lock:
            journey = self._journeys.get(journey_id)
            return journey.model_copy(deep=True) if journey else None

    async def get_by_slug(self, slug: str) -> Optional[Journey]:
        async with self._lock:
            for journey in self._journeys.values():
                if journey.slug == slug:
                    return journey.model_copy(deep=True)
            return None

    async def find_by_join_token(self, jti: str) -> Optional[Journey]:
        async with self._lock:
            for journey in self._journeys.values():
                if journey.join_token_jti == jti:
                    return journey.model_copy(deep=True)
            return None

    async def update_if_version(
        self,
        journey_id: str,
        version: int,
        changes: dict[str, Any],
    ) -> Optional[Journey]:
        async with self._lock:
            journey = self._journeys.get(journey_id)
            if journey is None or journey.version != version:
                return None
            return self._apply(journey, changes, utcnow())

    async def redeem_join_token(
        self,
        journey_id: str,
        version: int,
        jti: str,
        now: datetime,
        changes: dict[str, Any],
    ) -> Optional[Journey]:
        async with self._lock:
            journey = self._journeys.get(journey_id)
            if journey is None or journey.version != version:
                return None
            if not journey.has_live_join_token(jti, now):
                return None
            return self._apply(
                journey,
                {
                    **changes,
                    "join_token_used": True,
                    "join_token_jti": None,
                    "join_token_expires_at": None,
                },
                now,
            )

    def _apply(self, journey: Journey, changes: dict[str, Any], now: datetime) -> Journey:
        """Write changes with a version bump. Caller holds the lock."""
        updated = journey.model_copy(
            update={
                **changes,
                "version": journey.version + 1,
                "updated_at": now,
            },
            deep=True,
        )
        self._journeys[journey.id] = updated
        return updated.model_copy(deep=True)


class InMemoryUserRepository:
    """Dict-backed IUserRepository."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._lock = asyncio.Lock()

    async def create(self, user: User) -> User:
        async with self._lock:
            if user.id in self._users:
                raise ValueError(f"Duplicate user id: {user.id}")
            if user.email and any(u.email == user.email for u in self._users.values()):
                raise ValueError(f"Duplicate user email: {user.email}")
            self._users[user.id] = user.model_copy(deep=True)
            return user.model_copy(deep=True)

    async def get_by_id(self, user_id: str) -> Optional[User]:
        async with self._lock:
            user = self._users.get(user_id)
            return user.model_copy(deep=True) if user else None

    async def get_many(self, user_ids: list[str]) -> list[User]:
        async with self._lock:
            return [
                self._users[user_id].model_copy(deep=True)
                for user_id in user_ids
                if user_id in self._users
            ]

    async def delete(self, user_id: str) -> bool:
        async with self._lock:
            return self._users.pop(user_id, None) is not None

    async def set_guest_expiration(
        self,
        user_ids: list[str],
        expire_at: Optional[datetime],
    ) -> int:
        async with self._lock:
            count = 0
            for user_id in set(user_ids):
                user = self._users.get(user_id)
                if user is None or not user.is_guest:
                    continue
                self._users[user_id] = user.model_copy(update={"expire_at": expire_at})
                count += 1
            return count


class InMemoryExpenseRepository:
    """Dict-backed IExpenseRepository."""

    def __init__(self) -> None:
        self._expenses: dict[str, Expense] = {}
        self._lock = asyncio.Lock()

    async def create(self, expense: Expense) -> Expense:
        async with self._lock:
            self._expenses[expense.id] = expense.model_copy(deep=True)
            return expense.model_copy(deep=True)

    async def list_for_journey(self, journey_id: str) -> list[Expense]:
        async with self._lock:
            expenses = [
                e.model_copy(deep=True)
                for e in self._expenses.values()
                if e.journey_id == journey_id
            ]
        return sorted(expenses, key=lambda e: e.created_at)

    async def set_expiration_for_journey(
        self,
        journey_id: str,
        expire_at: Optional[datetime],
    ) -> int:
        async with self._lock:
            count = 0
            for expense_id, expense in self._expenses.items():
                if expense.journey_id == journey_id:
                    self._expenses[expense_id] = expense.model_copy(update={"expire_at": expire_at})
                    count += 1
            return count
