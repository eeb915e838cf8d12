"""
Rate limiter implementation using the limits library.

Limits are written in limits notation ("3/hour", "5 per 10 minutes").
Storage defaults to in-process memory; point RATE_LIMIT_STORAGE_URI at
"async+redis://..." to share counters between workers.
"""

import logging
import math
import time
from typing import Optional

from limits import parse
from limits.aio.storage import Storage
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string

from shared.config import Settings, get_settings

from .interfaces import IRateLimiter
from .exceptions import TooManyRequestsError

logger = logging.getLogger(__name__)


class LimitsRateLimiter(IRateLimiter):
    """A named moving-window limiter."""

    def __init__(
        self,
        name: str,
        limit: str,
        storage: Optional[Storage] = None,
        enabled: bool = True,
    ):
        """
        Initialize the limiter.

        Args:
            name: Limiter name, also used as the key namespace
            limit: Allowance in limits notation (e.g. "20/minute")
            storage: Async limits storage. Defaults to in-memory.
            enabled: When False, consume() always succeeds
        """
        self.name = name
        self._item = parse(limit)
        self._storage = storage or storage_from_string("async+memory://")
        self._strategy = MovingWindowRateLimiter(self._storage)
        self._enabled = enabled

    async def consume(self, key: str) -> None:
        """Consume one request for key, or raise TooManyRequestsError."""
        if not self._enabled:
            return

        if await self._strategy.hit(self._item, self.name, key):
            return

        stats = await self._strategy.get_window_stats(self._item, self.name, key)
        retry_after = max(0, math.ceil(stats.reset_time - time.time()))
        logger.warning(f"Rate limit '{self.name}' exceeded for {key}")
        raise TooManyRequestsError(self.name, retry_after=retry_after)


def build_rate_limiters(settings: Optional[Settings] = None) -> dict[str, LimitsRateLimiter]:
    """
    Build the named limiters from settings, sharing one storage backend.

    Returns:
        Mapping of limiter name (general, mutations, auth, join) to limiter
    """
    settings = settings or get_settings()
    storage = storage_from_string(settings.rate_limit_storage_uri)
    limits_by_name = {
        "general": settings.rate_limit_general,
        "mutations": settings.rate_limit_mutations,
        "auth": settings.rate_limit_auth,
        "join": settings.rate_limit_join,
    }
    return {
        name: LimitsRateLimiter(
            name,
            limit,
            storage=storage,
            enabled=settings.enable_rate_limiting,
        )
        for name, limit in limits_by_name.items()
    }


def build_rate_limit_key(
    user_id: Optional[str] = None,
    client_ip: Optional[str] = None,
) -> str:
    """Key requests by user when authenticated, otherwise by client address."""
    if user_id:
        return f"user:{user_id}"
    return f"ip:{client_ip or 'unknown'}"
