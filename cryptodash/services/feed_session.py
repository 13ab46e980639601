"""
Live feed sessions.
One FeedConnection plus one MessageSink per consumer, released as a unit.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cryptodash.config import settings
from cryptodash.schemas.feed import FeedHealth, TradeRecord
from cryptodash.services.feed_ws import ConnectionState, FeedConnection
from cryptodash.services.message_sink import new_sink
from cryptodash.services.trade_projection import extract_trades

logger = logging.getLogger("feed_session")


class FeedHandle:
    """Consumer handle for one live feed session."""

    def __init__(self, connection: FeedConnection):
        self._connection = connection
        self._sink = connection.sink
        self._released = False

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    @property
    def symbols(self) -> List[str]:
        return sorted(self._connection.symbols)

    @property
    def released(self) -> bool:
        return self._released

    async def update_symbols(self, symbols: Iterable[str]) -> None:
        """Replace the subscription set; an empty set releases the session."""
        symbols = [s for s in symbols if s and s.strip()]
        if not symbols:
            logger.info("[feed_session] Empty symbol set, releasing session")
            await self.close()
            return
        await self._connection.update_symbols(symbols)

    def messages(self) -> Tuple[Any, ...]:
        """Most recent messages in arrival order (bounded by sink capacity)."""
        return self._sink.snapshot()

    def trades(self, limit: Optional[int] = None) -> List[TradeRecord]:
        """Trade records projected from the current messages, oldest first."""
        records = extract_trades(self._sink.snapshot())
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return records

    def connected(self) -> bool:
        return self._connection.connected

    def last_error(self) -> Optional[str]:
        return self._connection.last_error

    def health(self) -> FeedHealth:
        return self._connection.get_health()

    async def close(self) -> None:
        """Release the session. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        await self._connection.close()
        self._sink.clear()
        logger.info("[feed_session] Session released")


async def subscribe(
    symbols: Iterable[str],
    token: Optional[str] = None,
    capacity: Optional[int] = None,
    **options: Any,
) -> FeedHandle:
    """
    Open a live feed session for ``symbols``.

    Args:
        symbols: Symbol identifiers to stream (e.g. ``BINANCE:BTCUSDT``)
        token: Feed access token, defaults to ``settings.FINNHUB_TOKEN``
        capacity: Message sink capacity, defaults to ``settings.FEED_SINK_CAPACITY``
        **options: Passed through to FeedConnection (base_url, connect, call_later, ...)

    Returns:
        The session handle. A missing token is reported through
        ``handle.last_error()``; it is never raised. An empty symbol set
        returns an already released handle and opens no socket.
    """
    symbols = [s for s in symbols if s and s.strip()]
    sink = new_sink(settings.FEED_SINK_CAPACITY if capacity is None else capacity)
    connection = FeedConnection(sink, **options)
    handle = FeedHandle(connection)
    if not symbols:
        logger.warning("[feed_session] No symbols requested, session not opened")
        await handle.close()
        return handle

    connection.open(symbols, settings.FINNHUB_TOKEN if token is None else token)
    return handle


def describe(handle: FeedHandle) -> Dict[str, Any]:
    """Health payload for logs and ops endpoints."""
    return handle.health().model_dump()
