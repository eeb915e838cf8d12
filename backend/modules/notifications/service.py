"""
Notifier implementations.

- SocketNotifier: POSTs to the realtime socket server's /notify-update
  endpoint in the background, with retries and per-journey coalescing
- NullNotifier: Drops every event (for wiring without a socket server)
"""

import asyncio
import logging
import random
from typing import Optional

import httpx

from shared.config import get_settings

from .interfaces import INotifier

logger = logging.getLogger(__name__)


class SocketNotifier(INotifier):
    """
    Best-effort notifier for the realtime socket server.

    The underlying httpx client is created lazily on first use and owned
    by this object: call close() on shutdown. notify_journey_update()
    only schedules a send and returns; while a send for a journey is in
    flight, further calls for that journey collapse into a single
    follow-up send.
    """

    NOTIFY_PATH = "/notify-update"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the notifier.

        Args:
            base_url: Socket server URL. Defaults to SOCKET_URL.
            api_key: Shared secret sent as x-api-key. Defaults to SOCKET_SECRET.
            timeout: Per-attempt timeout in seconds.
            max_retries: Retries after the first attempt for 429s and
                         transport errors.
            backoff_base: Base delay in seconds; attempt n waits
                          base * 2**n plus jitter.
            transport: Optional httpx transport (tests use MockTransport).
        """
        settings = get_settings()
        self._base_url = base_url or settings.socket_url
        self._api_key = api_key if api_key is not None else settings.socket_secret
        self._timeout = timeout if timeout is not None else settings.notify_timeout_seconds
        self._max_retries = max_retries if max_retries is not None else settings.notify_max_retries
        self._backoff_base = (
            backoff_base if backoff_base is not None else settings.notify_backoff_base_seconds
        )
        self._transport = transport

        self._client: Optional[httpx.AsyncClient] = None
        self._inflight: dict[str, asyncio.Task] = {}
        self._resend: set[str] = set()

    @property
    def is_connected(self) -> bool:
        """Whether the underlying HTTP client has been created."""
        return self._client is not None

    async def connect(self) -> httpx.AsyncClient:
        """Create the HTTP client if needed and return it."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"x-api-key": self._api_key},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Wait for outstanding sends, then release the HTTP client."""
        await self.flush()
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def flush(self) -> None:
        """Wait until every scheduled send has finished."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight.values()), return_exceptions=True)

    async def notify_journey_update(self, journey_id: str) -> None:
        """Schedule a notification for a journey and return immediately."""
        if not self._api_key:
            logger.warning(
                f"SOCKET_SECRET is not configured; dropping update for journey {journey_id}"
            )
            return

        task = self._inflight.get(journey_id)
        if task is not None and not task.done():
            self._resend.add(journey_id)
            return

        self._inflight[journey_id] = asyncio.create_task(self._run(journey_id))

    async def _run(self, journey_id: str) -> None:
        """Send for a journey until no follow-up send was requested."""
        try:
            while True:
                await self._send_with_retries(journey_id)
                if journey_id not in self._resend:
                    break
                self._resend.discard(journey_id)
        except Exception:
            logger.exception(f"Unexpected failure notifying journey {journey_id}")
        finally:
            self._inflight.pop(journey_id, None)

    async def _send_with_retries(self, journey_id: str) -> bool:
        """
        POST one update, retrying rate limits and transport errors.

        Returns:
            True if the socket server accepted the update.
        """
        reason = ""
        for attempt in range(1, self._max_retries + 2):
            try:
                client = await self.connect()
                response = await client.post(self.NOTIFY_PATH, json={"journeyId": journey_id})
            except httpx.HTTPError as e:
                reason = f"{type(e).__name__}: {e}"
            else:
                if response.is_success:
                    return True
                if response.status_code != 429:
                    logger.warning(
                        f"Socket server rejected update for journey {journey_id} "
                        f"with status {response.status_code}"
                    )
                    return False
                reason = "rate limited (429)"

            if attempt > self._max_retries:
                break
            await asyncio.sleep(self._backoff_delay(attempt))

        logger.warning(
            f"Could not notify socket server for journey {journey_id} "
            f"after {self._max_retries + 1} attempts: {reason}"
        )
        return False

    def _backoff_delay(self, attempt: int) -> float:
        """Exponential backoff with a small random jitter."""
        return self._backoff_base * (2 ** attempt) + random.uniform(0, self._backoff_base * 0.4)


class NullNotifier(INotifier):
    """Notifier that drops every event."""

    async def notify_journey_update(self, journey_id: str) -> None:
        logger.debug(f"Dropping update for journey {journey_id} (no notifier configured)")
