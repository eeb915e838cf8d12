import asyncio
import json

import httpx
import pytest

from modules.notifications.service import SocketNotifier, NullNotifier


def make_notifier(handler, **kwargs) -> SocketNotifier:
    kwargs.setdefault("api_key", "socket-secret")
    kwargs.setdefault("backoff_base", 0)
    return SocketNotifier(
        base_url="http://socket.test",
        max_retries=kwargs.pop("max_retries", 3),
        timeout=1.0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestSocketNotifier:
    @pytest.mark.asyncio
    async def test_posts_journey_id_with_api_key(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True})

        notifier = make_notifier(handler)
        await notifier.notify_journey_update("journey-1")
        await notifier.close()

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "POST"
        assert request.url == "http://socket.test/notify-update"
        assert request.headers["x-api-key"] == "socket-secret"
        assert json.loads(request.content) == {"journeyId": "journey-1"}

    @pytest.mark.asyncio
    async def test_does_not_block_caller(self):
        """notify_journey_update returns before the request completes."""
        release = asyncio.Event()
        calls = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            await release.wait()
            return httpx.Response(200)

        notifier = make_notifier(handler)
        await asyncio.wait_for(notifier.notify_journey_update("journey-1"), timeout=1)

        release.set()
        await notifier.close()
        assert calls == 1

    @pytest.mark.asyncio
    async def test_retries_rate_limited_then_succeeds(self):
        statuses = iter([429, 429, 200])
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(next(statuses))

        notifier = make_notifier(handler)
        assert await notifier._send_with_retries("journey-1") is True
        await notifier.close()
        assert calls == 3

    @pytest.mark.asyncio
    async def test_retries_transport_errors(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200)

        notifier = make_notifier(handler)
        assert await notifier._send_with_retries("journey-1") is True
        await notifier.close()
        assert calls == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, caplog):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(429)

        notifier = make_notifier(handler, max_retries=2)
        assert await notifier._send_with_retries("journey-1") is False
        await notifier.close()

        assert calls == 3
        assert "after 3 attempts" in caplog.text

    @pytest.mark.asyncio
    async def test_does_not_retry_other_errors(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(401)

        notifier = make_notifier(handler)
        assert await notifier._send_with_retries("journey-1") is False
        await notifier.close()
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failures_do_not_propagate(self):
        """A send that keeps failing never surfaces to the caller."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        notifier = make_notifier(handler, max_retries=1)
        await notifier.notify_journey_update("journey-1")
        await notifier.flush()
        await notifier.close()

    @pytest.mark.asyncio
    async def test_coalesces_updates_while_in_flight(self):
        """Calls during an in-flight send collapse into one follow-up send."""
        release = asyncio.Event()
        calls = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                await release.wait()
            return httpx.Response(200)

        notifier = make_notifier(handler)
        await notifier.notify_journey_update("journey-1")
        await asyncio.sleep(0)
        for _ in range(5):
            await notifier.notify_journey_update("journey-1")

        release.set()
        await notifier.close()
        assert calls == 2

    @pytest.mark.asyncio
    async def test_separate_journeys_are_not_coalesced(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content)["journeyId"])
            return httpx.Response(200)

        notifier = make_notifier(handler)
        await notifier.notify_journey_update("journey-1")
        await notifier.notify_journey_update("journey-2")
        await notifier.close()

        assert sorted(seen) == ["journey-1", "journey-2"]

    @pytest.mark.asyncio
    async def test_missing_secret_skips_send(self, caplog):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200)

        notifier = make_notifier(handler, api_key="")
        await notifier.notify_journey_update("journey-1")
        await notifier.close()

        assert calls == 0
        assert "SOCKET_SECRET" in caplog.text

    @pytest.mark.asyncio
    async def test_connect_and_close(self):
        notifier = make_notifier(lambda request: httpx.Response(200))
        assert notifier.is_connected is False

        client = await notifier.connect()
        assert notifier.is_connected is True
        assert await notifier.connect() is client

        await notifier.close()
        assert notifier.is_connected is False

    def test_backoff_grows_exponentially(self):
        notifier = SocketNotifier(api_key="k", backoff_base=0.25)
        assert 0.5 <= notifier._backoff_delay(1) <= 0.6
        assert 1.0 <= notifier._backoff_delay(2) <= 1.1


class TestNullNotifier:
    @pytest.mark.asyncio
    async def test_drops_events(self):
        await NullNotifier().notify_journey_update("journey-1")
