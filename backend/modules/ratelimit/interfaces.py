"""
Rate limiting module interface.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class IRateLimiter(Protocol):
    """
    Interface for a keyed rate limiter.

    consume() spends one unit of the key's allowance and raises
    TooManyRequestsError when none is left.
    """

    async def consume(self, key: str) -> None:
        """Consume one request for key, or raise TooManyRequestsError."""
        ...
