"""Tests for the version compare-and-set helper."""

import pytest

from modules.journeys.exceptions import ConcurrentUpdateError, JourneyNotFoundError, NotLeaderError
from modules.journeys.memory import InMemoryJourneyRepository
from modules.journeys.versioning import update_with_retry


class RacingRepository(InMemoryJourneyRepository):
    """Another writer lands between every read and write, `races` times."""

    def __init__(self, races: int) -> None:
        super().__init__()
        self.races = races

    async def update_if_version(self, journey_id, version, changes):
        if self.races > 0:
            self.races -= 1
            await super().update_if_version(journey_id, version, {"is_input_locked": True})
        return await super().update_if_version(journey_id, version, changes)


@pytest.mark.asyncio
async def test_writes_changes(journey_repo, journey):
    updated, written = await update_with_retry(
        journey_repo, journey.id, lambda j: {"is_locked": True}, max_retries=3
    )
    assert written is True
    assert updated.is_locked is True
    assert updated.version == journey.version + 1


@pytest.mark.asyncio
async def test_noop_does_not_write(journey_repo, journey):
    current, written = await update_with_retry(journey_repo, journey.id, lambda j: None, max_retries=3)
    assert written is False
    assert current.version == journey.version


@pytest.mark.asyncio
async def test_missing_journey(journey_repo):
    with pytest.raises(JourneyNotFoundError):
        await update_with_retry(journey_repo, "missing", lambda j: {}, max_retries=3)


@pytest.mark.asyncio
async def test_mutation_errors_propagate(journey_repo, journey):
    def refuse(j):
        raise NotLeaderError(j.id, "someone", "lock the journey")

    with pytest.raises(NotLeaderError):
        await update_with_retry(journey_repo, journey.id, refuse, max_retries=3)


@pytest.mark.asyncio
async def test_retries_with_fresh_snapshot(journey):
    repo = RacingRepository(races=2)
    await repo.create(journey)
    seen = []

    def mutate(j):
        seen.append(j.version)
        return {"is_locked": True}

    updated, written = await update_with_retry(repo, journey.id, mutate, max_retries=3)

    assert written is True
    assert seen == [0, 1, 2]
    assert updated.is_locked is True
    assert updated.is_input_locked is True


@pytest.mark.asyncio
async def test_gives_up(journey):
    repo = RacingRepository(races=10)
    await repo.create(journey)

    with pytest.raises(ConcurrentUpdateError):
        await update_with_retry(repo, journey.id, lambda j: {"is_locked": True}, max_retries=3)
