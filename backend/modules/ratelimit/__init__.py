"""
Rate limiting module.

Public API:
- IRateLimiter: Interface for keyed rate limiters
- LimitsRateLimiter: Moving-window limiter backed by the limits library
- build_rate_limiters: Named limiters (general, mutations, auth, join)
- build_rate_limit_key: Key derivation from user id or client address
- TooManyRequestsError: Raised when a limit is exceeded
"""

from .interfaces import IRateLimiter
from .service import LimitsRateLimiter, build_rate_limiters, build_rate_limit_key
from .exceptions import TooManyRequestsError

__all__ = [
    "IRateLimiter",
    "LimitsRateLimiter",
    "build_rate_limiters",
    "build_rate_limit_key",
    "TooManyRequestsError",
]
