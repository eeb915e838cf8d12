"""Tests for shared/repository.py."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from shared.repository import BaseRepository


class TestBaseRepository:
    """Tests for BaseRepository base class."""

    def test_init_stores_db_client(self):
        mock_db = MagicMock()
        repo = BaseRepository(mock_db)
        assert repo._db is mock_db

    @pytest.mark.asyncio
    async def test_execute_runs_query(self):
        """_execute should call the query builder's execute()."""
        query = MagicMock()
        query.execute.return_value.data = [{"id": "123"}]
        repo = BaseRepository(MagicMock())

        result = await repo._execute(query)

        query.execute.assert_called_once_with()
        assert result.data == [{"id": "123"}]

    def test_serialize_converts_datetimes(self):
        when = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        repo = BaseRepository(MagicMock())

        data = repo._serialize({"expire_at": when, "name": "x", "members": ["a"]})

        assert data == {
            "expire_at": "2026-01-02T03:04:05+00:00",
            "name": "x",
            "members": ["a"],
        }

    def test_first_returns_first_row_or_none(self):
        result = MagicMock()
        result.data = [{"id": "1"}, {"id": "2"}]
        assert BaseRepository._first(result) == {"id": "1"}

        result.data = []
        assert BaseRepository._first(result) is None
