"""
Pytest Configuration
Provides a fake feed transport, a manual timer harness and feed fixtures.
"""

import asyncio
import json
import pytest
from typing import Any, Callable, List, Optional

from cryptodash.observability.metrics import get_metrics
from cryptodash.services.feed_ws import FeedConnection
from cryptodash.services.message_sink import MessageSink

TEST_TOKEN = "test-token"

_CLOSE = object()


class FakeTransport:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self, uri: str):
        self.uri = uri
        self.sent: List[dict] = []
        self.closed = False
        self.fail_send = False
        self._inbound: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.fail_send or self.closed:
            raise ConnectionError("socket is closed")
        self.sent.append(json.loads(message))

    async def close(self) -> None:
        self.closed = True
        self._inbound.put_nowait(_CLOSE)

    def push(self, raw: Any) -> None:
        """Deliver an inbound frame."""
        self._inbound.put_nowait(raw)

    def drop(self, error: Optional[BaseException] = None) -> None:
        """Unsolicited close (clean) or transport error."""
        self._inbound.put_nowait(error if error is not None else _CLOSE)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbound.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeConnector:
    """Transport factory recording every connection attempt."""

    def __init__(self):
        self.uris: List[str] = []
        self.transports: List[FakeTransport] = []
        self.failures = 0

    async def __call__(self, uri: str) -> FakeTransport:
        self.uris.append(uri)
        if self.failures > 0:
            self.failures -= 1
            raise OSError("connection refused")
        transport = FakeTransport(uri)
        self.transports.append(transport)
        return transport

    @property
    def latest(self) -> FakeTransport:
        return self.transports[-1]


class FakeTimerHandle:
    def __init__(self, delay: float, callback: Callable, args: tuple):
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimers:
    """Manual call_later replacement; nothing fires until the test says so."""

    def __init__(self):
        self.scheduled: List[FakeTimerHandle] = []

    def __call__(self, delay: float, callback: Callable, *args) -> FakeTimerHandle:
        handle = FakeTimerHandle(delay, callback, args)
        self.scheduled.append(handle)
        return handle

    @property
    def pending(self) -> List[FakeTimerHandle]:
        return [h for h in self.scheduled if not h.cancelled and not h.fired]

    @property
    def delays(self) -> List[float]:
        return [h.delay for h in self.scheduled]

    def fire(self, handle: FakeTimerHandle) -> None:
        """Run a callback even if cancelled (simulates a timer racing teardown)."""
        handle.fired = True
        handle.callback(*handle.args)

    def fire_pending(self) -> None:
        for handle in self.pending:
            self.fire(handle)


async def settle(rounds: int = 10) -> None:
    """Let the feed tasks run until they block on the fake transport."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def sink() -> MessageSink:
    return MessageSink(500)


@pytest.fixture
async def feed(sink, connector, timers):
    """FeedConnection wired to the fakes; torn down after the test."""
    connection = FeedConnection(
        sink,
        base_url="wss://feed.test",
        connect=connector,
        call_later=timers,
        base_delay_ms=1000,
        max_delay_ms=30000,
    )
    yield connection
    await connection.close()


@pytest.fixture(autouse=True)
def reset_metrics():
    get_metrics().reset()
    yield
    get_metrics().reset()
