"""
Join token issuance and decoding.

A join token is short-lived and single-use. The journey row stores only
its jti; the client receives a signed JWT wrapping that jti, or may send
the bare jti (e.g. typed from a share link).
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

import jwt

from shared.config import get_settings

from .interfaces import IJourneyRepository
from .versioning import update_with_retry
from .models import JoinTokenClaims, utcnow
from .exceptions import InvalidOrUsedTokenError

logger = logging.getLogger(__name__)

JOIN_TOKEN_TYPE = "join_token"


class JoinTokenIssuer:
    """Mints join tokens and resolves presented tokens to their jti."""

    def __init__(
        self,
        journeys: IJourneyRepository,
        secret: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        algorithm: Optional[str] = None,
        max_retries: Optional[int] = None,
    ):
        settings = get_settings()
        self._journeys = journeys
        self._secret = secret if secret is not None else settings.join_token_secret
        self._ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.join_token_ttl_seconds
        self._algorithm = algorithm or settings.jwt_algorithm
        self._max_retries = (
            max_retries if max_retries is not None else settings.membership_update_retries
        )

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    async def generate_join_token(self, journey_id: str) -> str:
        """
        Mint a fresh join token for a journey.

        Overwrites the stored jti, so any token issued earlier stops
        working at once.

        Raises:
            JourneyNotFoundError: If the journey does not exist
            ConcurrentUpdateError: If every attempt lost the race
        """
        if not self._secret:
            raise RuntimeError("JOIN_TOKEN_SECRET is not configured")

        now = utcnow()
        expires_at = now + timedelta(seconds=self._ttl_seconds)
        jti = secrets.token_urlsafe(16)

        await update_with_retry(
            self._journeys,
            journey_id,
            lambda journey: {
                "join_token_jti": jti,
                "join_token_expires_at": expires_at,
                "join_token_used": False,
            },
            self._max_retries,
        )

        logger.info(f"Issued join token for journey {journey_id}")

        return jwt.encode(
            {
                "journeyId": journey_id,
                "type": JOIN_TOKEN_TYPE,
                "jti": jti,
                "iat": int(now.timestamp()),
                "exp": int(expires_at.timestamp()),
            },
            self._secret,
            algorithm=self._algorithm,
        )

    def decode_token(self, raw: Optional[str]) -> JoinTokenClaims:
        """
        Resolve a presented token to its jti.

        A verified signed join token wins. Anything else, including a JWT
        that fails verification, is taken as a bare jti and left for the
        conditional redeem to accept or refuse.

        Raises:
            InvalidOrUsedTokenError: If the input is empty
        """
        token = (raw or "").strip()
        if not token:
            raise InvalidOrUsedTokenError("Join token is required")

        claims = self._verify_signed(token)
        if claims is not None:
            return claims

        return JoinTokenClaims(jti=token)

    def _verify_signed(self, token: str) -> Optional[JoinTokenClaims]:
        if not self._secret:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "jti"]},
            )
        except jwt.InvalidTokenError as e:
            logger.debug(f"Not a valid signed join token ({e}); treating as bare jti")
            return None

        if payload.get("type") != JOIN_TOKEN_TYPE:
            return None
        jti = payload.get("jti")
        journey_id = payload.get("journeyId")
        if not jti or not journey_id:
            return None

        return JoinTokenClaims(jti=jti, journey_id=str(journey_id), signed=True)
