"""
Base repository class for database access.

Provides a common abstraction layer for all repositories, encapsulating
Supabase client access and providing shared utilities for data operations.
"""

import asyncio
from datetime import datetime
from typing import TypeVar, Generic, Any, Optional
from supabase import Client


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all Supabase repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints
    - _execute() to run a built query off the event loop

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class UserRepository(BaseRepository[User]):
            async def get_by_id(self, user_id: str) -> Optional[User]:
                result = await self._execute(
                    self._db.table("users").select("*").eq("id", user_id)
                )
                if not result.data:
                    return None
                return self._map_to_user(result.data[0])
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db

    async def _execute(self, query: Any) -> Any:
        """Execute a PostgREST query builder in a worker thread."""
        return await asyncio.to_thread(query.execute)

    @staticmethod
    def _to_db_value(value: Any) -> Any:
        """Convert Python values to their JSON-safe database representation."""
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    def _serialize(self, data: dict[str, Any]) -> dict[str, Any]:
        """Serialize a dict of column values for insert/update."""
        return {key: self._to_db_value(value) for key, value in data.items()}

    @staticmethod
    def _first(result: Any) -> Optional[dict[str, Any]]:
        """Return the first row of a query result, or None."""
        if not result.data:
            return None
        return result.data[0]
