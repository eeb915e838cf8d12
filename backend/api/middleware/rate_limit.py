"""
Rate limiting dependencies.

Requests are keyed by the session user when there is one, otherwise by
client address. Exceeding a limit raises TooManyRequestsError, which the
application's error handler turns into a 429.
"""

from typing import Callable, Optional

from fastapi import Depends, Request

from modules.ratelimit import IRateLimiter, build_rate_limit_key
from shared.models import AuthenticatedUser

from ..dependencies import get_rate_limiters
from .auth import get_optional_user


def rate_limit(name: str) -> Callable:
    """Build a dependency that consumes one request from the named limiter."""

    async def dependency(
        request: Request,
        user: Optional[AuthenticatedUser] = Depends(get_optional_user),
        limiters: dict[str, IRateLimiter] = Depends(get_rate_limiters),
    ) -> None:
        limiter = limiters.get(name)
        if limiter is None:
            return
        client_ip = request.client.host if request.client else None
        await limiter.consume(build_rate_limit_key(user.id if user else None, client_ip))

    return dependency


limit_general = rate_limit("general")
limit_mutations = rate_limit("mutations")
