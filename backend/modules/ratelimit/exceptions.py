"""
Rate limiting module exceptions.
"""

from typing import Optional

from shared.exceptions import RateLimitError


class TooManyRequestsError(RateLimitError):
    """Raised when a key has exhausted its allowance for a limiter."""

    def __init__(self, limiter: str, retry_after: Optional[int] = None):
        details: dict = {"limiter": limiter}
        if retry_after is not None:
            details["retry_after"] = retry_after
        super().__init__(
            "Too many requests, please try again later",
            code="TOO_MANY_REQUESTS",
            details=details,
        )
        self.retry_after = retry_after
