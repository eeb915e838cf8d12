"""
Compare-and-set helper for journey writes.

Journey rows carry a `version` column. A writer reads the row, computes
its changes from that snapshot and writes them only if the version is
unchanged; on a lost race it re-reads and tries again.
"""

import logging
from typing import Any, Callable, Optional

from .interfaces import IJourneyRepository
from .models import Journey
from .exceptions import JourneyNotFoundError, ConcurrentUpdateError

logger = logging.getLogger(__name__)

Mutation = Callable[[Journey], Optional[dict[str, Any]]]


async def update_with_retry(
    journeys: IJourneyRepository,
    journey_id: str,
    mutate: Mutation,
    max_retries: int,
) -> tuple[Journey, bool]:
    """
    Apply a mutation to the latest journey snapshot with version CAS.

    Args:
        journeys: Journey repository
        journey_id: Journey to update
        mutate: Called with a fresh snapshot on every attempt. Returns the
                change-set, or None when there is nothing to write. May
                raise to abort.
        max_retries: Number of attempts before giving up

    Returns:
        (journey, written): the updated journey, or the unchanged snapshot
        with written=False when mutate returned None.

    Raises:
        JourneyNotFoundError: If the journey does not exist
        ConcurrentUpdateError: If every attempt lost the race
    """
    attempts = max(1, max_retries)
    for attempt in range(1, attempts + 1):
        journey = await journeys.get_by_id(journey_id)
        if journey is None:
            raise JourneyNotFoundError(journey_id)

        changes = mutate(journey)
        if changes is None:
            return journey, False

        updated = await journeys.update_if_version(journey_id, journey.version, changes)
        if updated is not None:
            return updated, True

        logger.debug(
            f"Version conflict on journey {journey_id} (attempt {attempt}/{attempts})"
        )

    logger.warning(f"Giving up on journey {journey_id} after {attempts} conflicting writes")
    raise ConcurrentUpdateError(journey_id, attempts)
