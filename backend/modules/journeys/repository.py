"""
Journey repositories for database access.

Encapsulates all Supabase queries and data mapping for the tables the
admission flow touches:
- journeys
- users
- expenses

Conditional writes are expressed as a single PostgREST UPDATE with eq/gt
filters, so the database evaluates the condition and the write together.
An update whose filter matches no row returns no data.
"""

from datetime import datetime
from typing import Optional, Any

from shared.repository import BaseRepository
from .models import (
    Expense,
    Journey,
    JourneyStatus,
    User,
    utcnow,
)


class SupabaseJourneyRepository(BaseRepository[Journey]):
    """
    Repository for journey data access.

    Note: This repository does NOT perform authorization checks.
    The service layer is responsible for verifying leadership and membership.
    """

    TABLE = "journeys"

    async def create(self, journey: Journey) -> Journey:
        """Insert a journey and return the stored row."""
        data = self._serialize(journey.model_dump())
        result = await self._execute(self._db.table(self.TABLE).insert(data))
        return self._map_to_journey(result.data[0])

    async def get_by_id(self, journey_id: str) -> Optional[Journey]:
        result = await self._execute(
            self._db.table(self.TABLE).select("*").eq("id", journey_id)
        )
        row = self._first(result)
        return self._map_to_journey(row) if row else None

    async def get_by_slug(self, slug: str) -> Optional[Journey]:
        result = await self._execute(
            self._db.table(self.TABLE).select("*").eq("slug", slug)
        )
        row = self._first(result)
        return self._map_to_journey(row) if row else None

    async def find_by_join_token(self, jti: str) -> Optional[Journey]:
        result = await self._execute(
            self._db.table(self.TABLE).select("*").eq("join_token_jti", jti).limit(1)
        )
        row = self._first(result)
        return self._map_to_journey(row) if row else None

    async def update_if_version(
        self,
        journey_id: str,
        version: int,
        changes: dict[str, Any],
    ) -> Optional[Journey]:
        """
        Compare-and-set update on the version column.

        Returns:
            The updated journey, or None if the version moved on.
        """
        data = self._serialize({
            **changes,
            "version": version + 1,
            "updated_at": utcnow(),
        })
        result = await self._execute(
            self._db.table(self.TABLE)
            .update(data)
            .eq("id", journey_id)
            .eq("version", version)
        )
        row = self._first(result)
        return self._map_to_journey(row) if row else None

    async def redeem_join_token(
        self,
        journey_id: str,
        version: int,
        jti: str,
        now: datetime,
        changes: dict[str, Any],
    ) -> Optional[Journey]:
        """
        Consume a join token and apply membership changes in one UPDATE.

        Returns:
            The updated journey, or None if the filter did not match.
        """
        data = self._serialize({
            **changes,
            "join_token_used": True,
            "join_token_jti": None,
            "join_token_expires_at": None,
            "version": version + 1,
            "updated_at": now,
        })
        result = await self._execute(
            self._db.table(self.TABLE)
            .update(data)
            .eq("id", journey_id)
            .eq("version", version)
            .eq("join_token_jti", jti)
            .eq("join_token_used", False)
            .gt("join_token_expires_at", now.isoformat())
        )
        row = self._first(result)
        return self._map_to_journey(row) if row else None

    def _map_to_journey(self, data: dict[str, Any]) -> Journey:
        """Map database row to Journey model."""
        return Journey(
            id=str(data["id"]),
            slug=data["slug"],
            name=data["name"],
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            status=JourneyStatus(data.get("status") or JourneyStatus.ACTIVE.value),
            is_locked=bool(data.get("is_locked", False)),
            is_input_locked=bool(data.get("is_input_locked", False)),
            require_approval=bool(data.get("require_approval", False)),
            password_hash=data.get("password_hash"),
            leader_id=str(data["leader_id"]),
            members=[str(m) for m in data.get("members") or []],
            pending_members=[str(m) for m in data.get("pending_members") or []],
            rejected_members=[str(m) for m in data.get("rejected_members") or []],
            join_token_jti=data.get("join_token_jti"),
            join_token_expires_at=data.get("join_token_expires_at"),
            join_token_used=bool(data.get("join_token_used", False)),
            expire_at=data.get("expire_at"),
            leader_left_at=data.get("leader_left_at"),
            version=data.get("version", 0),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )


class SupabaseUserRepository(BaseRepository[User]):
    """Repository for user rows (registered users and guests)."""

    TABLE = "users"

    async def create(self, user: User) -> User:
        data = self._serialize(user.model_dump())
        result = await self._execute(self._db.table(self.TABLE).insert(data))
        return self._map_to_user(result.data[0])

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self._execute(
            self._db.table(self.TABLE).select("*").eq("id", user_id)
        )
        row = self._first(result)
        return self._map_to_user(row) if row else None

    async def get_many(self, user_ids: list[str]) -> list[User]:
        if not user_ids:
            return []
        result = await self._execute(
            self._db.table(self.TABLE).select("*").in_("id", user_ids)
        )
        return [self._map_to_user(row) for row in result.data or []]

    async def delete(self, user_id: str) -> bool:
        result = await self._execute(
            self._db.table(self.TABLE).delete().eq("id", user_id)
        )
        return bool(result.data)

    async def set_guest_expiration(
        self,
        user_ids: list[str],
        expire_at: Optional[datetime],
    ) -> int:
        if not user_ids:
            return 0
        result = await self._execute(
            self._db.table(self.TABLE)
            .update(self._serialize({"expire_at": expire_at}))
            .in_("id", user_ids)
            .eq("is_guest", True)
        )
        return len(result.data or [])

    def _map_to_user(self, data: dict[str, Any]) -> User:
        """Map database row to User model."""
        return User(
            id=str(data["id"]),
            name=data["name"],
            email=data.get("email"),
            is_guest=bool(data.get("is_guest", False)),
            expire_at=data.get("expire_at"),
            created_at=data["created_at"],
        )


class SupabaseExpenseRepository(BaseRepository[Expense]):
    """Repository for the expense columns the expiration cascade touches."""

    TABLE = "expenses"

    async def create(self, expense: Expense) -> Expense:
        data = self._serialize(expense.model_dump())
        result = await self._execute(self._db.table(self.TABLE).insert(data))
        return self._map_to_expense(result.data[0])

    async def list_for_journey(self, journey_id: str) -> list[Expense]:
        result = await self._execute(
            self._db.table(self.TABLE)
            .select("*")
            .eq("journey_id", journey_id)
            .order("created_at")
        )
        return [self._map_to_expense(row) for row in result.data or []]

    async def set_expiration_for_journey(
        self,
        journey_id: str,
        expire_at: Optional[datetime],
    ) -> int:
        result = await self._execute(
            self._db.table(self.TABLE)
            .update(self._serialize({"expire_at": expire_at}))
            .eq("journey_id", journey_id)
        )
        return len(result.data or [])

    def _map_to_expense(self, data: dict[str, Any]) -> Expense:
        """Map database row to Expense model."""
        return Expense(
            id=str(data["id"]),
            journey_id=str(data["journey_id"]),
            payer_id=str(data["payer_id"]),
            total_amount=float(data.get("total_amount") or 0),
            description=data.get("description") or "",
            expire_at=data.get("expire_at"),
            created_at=data["created_at"],
        )
