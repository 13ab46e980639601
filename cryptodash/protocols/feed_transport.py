"""
Feed transport protocols.
Defines the socket and timer seams the connection manager depends on.
"""

from typing import Any, AsyncIterator, Awaitable, Callable, Protocol


class FeedTransport(Protocol):
    """Protocol for a live feed socket (websockets client connection shape)."""

    async def send(self, message: str) -> None:
        """Send a text frame."""
        ...

    async def close(self) -> None:
        """Close the socket."""
        ...

    def __aiter__(self) -> AsyncIterator[Any]:
        """Iterate inbound frames until the socket closes."""
        ...


class TimerHandle(Protocol):
    """Protocol for a pending deferred callback."""

    def cancel(self) -> None:
        """Cancel the callback if it has not fired."""
        ...


ConnectFactory = Callable[[str], Awaitable[FeedTransport]]
CallLater = Callable[..., TimerHandle]
