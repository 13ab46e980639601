"""
Finnhub-style WebSocket feed connection.
Single socket for all symbols with resubscribe-on-open and exponential backoff.
"""

import asyncio
import json
import logging
import time
import websockets
from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional

from cryptodash.config import settings, feed_uri
from cryptodash.errors import ConfigurationError, create_structured_error_response, sanitize_error_message
from cryptodash.observability import metrics
from cryptodash.observability.logs import log_event
from cryptodash.protocols import CallLater, ConnectFactory, FeedTransport, TimerHandle
from cryptodash.schemas.feed import ControlFrame, FeedHealth
from cryptodash.services.backoff import backoff_delay_ms
from cryptodash.services.message_sink import MessageSink

logger = logging.getLogger("feed_ws")


class ConnectionState(Enum):
    """Feed connection lifecycle states."""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    RECONNECT_SCHEDULED = "reconnect_scheduled"
    ERROR = "error"  # configuration error, never retried


class FeedConnection:
    """Owns one feed socket, its subscription set and its reconnect timer.

    Inbound frames are JSON-decoded and appended to ``sink`` in arrival order.
    Transport errors and unsolicited closes are recovered through a single
    reconnect entry point; only a missing token is fatal.  After ``close()``
    the connection is torn down for good.
    """

    def __init__(
        self,
        sink: MessageSink,
        base_url: Optional[str] = None,
        connect: Optional[ConnectFactory] = None,
        call_later: Optional[CallLater] = None,
        base_delay_ms: Optional[int] = None,
        max_delay_ms: Optional[int] = None,
        open_timeout_ms: Optional[int] = None,
    ):
        self.sink = sink
        self.base_url = base_url or settings.FEED_WS_URL
        self._connect_factory = connect or self._websockets_connect
        self._call_later = call_later
        self.base_delay_ms = settings.FEED_RECONNECT_BASE_MS if base_delay_ms is None else base_delay_ms
        self.max_delay_ms = settings.FEED_BACKOFF_MAX_MS if max_delay_ms is None else max_delay_ms
        self.open_timeout_ms = settings.FEED_OPEN_TIMEOUT_MS if open_timeout_ms is None else open_timeout_ms

        # Connection state
        self.state = ConnectionState.IDLE
        self.symbols: FrozenSet[str] = frozenset()
        self.connected = False
        self.last_error: Optional[str] = None
        self.reconnect_attempt = 0

        # Health metrics
        self.reconnects = 0
        self.messages_received = 0
        self.frames_dropped = 0
        self.last_message_ts = 0.0

        self._uri: Optional[str] = None
        self._ws: Optional[FeedTransport] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[TimerHandle] = None
        self._generation = 0
        self._torn_down = False

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    def open(self, symbols: Iterable[str], token: Optional[str]) -> bool:
        """Start the feed; returns False when no connection attempt was made."""
        if self._torn_down:
            logger.warning("[feed_ws] open() after close() ignored")
            return False
        if self.state not in (ConnectionState.IDLE, ConnectionState.ERROR):
            logger.warning(f"[feed_ws] Already {self.state.value}, open() ignored")
            return False

        self.symbols = frozenset(symbols)
        try:
            self._uri = feed_uri(self.base_url, token)
        except ConfigurationError as e:
            self.state = ConnectionState.ERROR
            self.connected = False
            self.last_error = e.message
            logger.error(f"[feed_ws] Configuration error: {e.message}, not connecting")
            return False

        logger.info(f"[feed_ws] Opening feed for symbols: {sorted(self.symbols)}")
        self._connect()
        return True

    async def update_symbols(self, symbols: Iterable[str]) -> None:
        """Replace the subscription set, diffing against the live socket."""
        if self._torn_down:
            logger.warning("[feed_ws] update_symbols() after close() ignored")
            return

        new_symbols = frozenset(symbols)
        removed = self.symbols - new_symbols
        added = new_symbols - self.symbols
        self.symbols = new_symbols

        ws = self._ws
        if self.state is not ConnectionState.OPEN or ws is None:
            logger.debug(f"[feed_ws] Not open ({self.state.value}), symbols applied on next open")
            return

        try:
            for symbol in sorted(removed):
                await self._send_control(ws, "unsubscribe", symbol)
            for symbol in sorted(added):
                await self._send_control(ws, "subscribe", symbol)
        except Exception as e:
            # The reader sees the same failure and reconnects with a full resubscribe
            logger.warning(f"[feed_ws] Subscription update failed: {sanitize_error_message(str(e))}")

    async def close(self) -> None:
        """Tear down: best-effort unsubscribe, close socket, cancel reconnect."""
        if self._torn_down:
            return
        self._torn_down = True
        self._generation += 1

        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        ws, self._ws = self._ws, None
        task, self._reader_task = self._reader_task, None
        self.state = ConnectionState.IDLE
        self.connected = False
        metrics.record_ws_connected(False)

        if ws is not None:
            for symbol in sorted(self.symbols):
                try:
                    await self._send_control(ws, "unsubscribe", symbol)
                except Exception as e:
                    logger.debug(f"[feed_ws] Unsubscribe {symbol} on close failed: {e}")
            await self._close_quietly(ws)

        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info("[feed_ws] Connection closed")

    def _connect(self) -> None:
        """Single entry point for the first connect and every reconnect."""
        self._generation += 1
        generation = self._generation
        self.state = ConnectionState.CONNECTING
        self._reader_task = asyncio.create_task(self._run(generation), name=f"feed_ws:{generation}")

    def _is_current(self, generation: int) -> bool:
        return not self._torn_down and generation == self._generation

    async def _websockets_connect(self, uri: str) -> FeedTransport:
        open_timeout = self.open_timeout_ms / 1000.0 if self.open_timeout_ms > 0 else None
        return await websockets.connect(uri, open_timeout=open_timeout)

    async def _run(self, generation: int) -> None:
        try:
            ws = await self._connect_factory(self._uri)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._on_disconnect(generation, e)
            return

        if not self._is_current(generation):
            await self._close_quietly(ws)
            return

        self._ws = ws
        try:
            await self._on_open(ws, generation)
            async for raw_message in ws:
                self._on_frame(raw_message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._on_disconnect(generation, e)
            return
        self._on_disconnect(generation, None)

    async def _on_open(self, ws: FeedTransport, generation: int) -> None:
        self.state = ConnectionState.OPEN
        self.connected = True
        self.last_error = None
        metrics.record_ws_open()
        metrics.record_ws_connected(True)
        logger.info("[feed_ws] Connected to feed")

        # Full set on every open; the feed forgets subscriptions with the socket
        for symbol in sorted(self.symbols):
            if not self._is_current(generation):
                return
            if symbol in self.symbols:
                await self._send_control(ws, "subscribe", symbol)
        self.reconnect_attempt = 0
        logger.info(f"[feed_ws] Subscribed to {len(self.symbols)} symbols")

    def _on_frame(self, raw_message: Any) -> None:
        self.last_message_ts = time.time()
        try:
            message = json.loads(raw_message)
        except (TypeError, ValueError):
            self.frames_dropped += 1
            metrics.record_ws_dropped()
            logger.debug("[feed_ws] Dropped undecodable frame")
            return

        self.messages_received += 1
        self.sink.append(message)
        msg_type = message.get("type") if isinstance(message, dict) else None
        metrics.record_ws_message(str(msg_type or "unknown"))

    def _on_disconnect(self, generation: int, error: Optional[BaseException]) -> None:
        if not self._is_current(generation):
            return

        self._ws = None
        self._reader_task = None
        self.connected = False
        self.state = ConnectionState.CLOSED
        metrics.record_ws_connected(False)
        if error is not None:
            self.last_error = sanitize_error_message(f"WebSocket error: {error}")

        delay_ms = backoff_delay_ms(self.reconnect_attempt, self.base_delay_ms, self.max_delay_ms)
        self.reconnect_attempt += 1
        self.reconnects += 1
        metrics.record_ws_reconnect()
        log_event(
            logger, logging.WARNING, "ws_reconnect",
            sleep_ms=delay_ms,
            attempt=self.reconnect_attempt,
            reason="error" if error is not None else "closed",
            error=create_structured_error_response(error) if error is not None else None,
        )

        self.state = ConnectionState.RECONNECT_SCHEDULED
        call_later = self._call_later or asyncio.get_running_loop().call_later
        self._reconnect_handle = call_later(delay_ms / 1000.0, self._fire_reconnect, generation)

    def _fire_reconnect(self, generation: int) -> None:
        self._reconnect_handle = None
        if not self._is_current(generation):
            logger.debug("[feed_ws] Stale reconnect timer ignored")
            return
        self._connect()

    async def _send_control(self, ws: FeedTransport, action: str, symbol: str) -> None:
        frame = ControlFrame(type=action, symbol=symbol)
        await ws.send(frame.model_dump_json())

    async def _close_quietly(self, ws: FeedTransport) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.debug(f"[feed_ws] Socket close failed: {e}")

    def last_message_s_ago(self) -> Optional[float]:
        """Seconds since the last inbound frame, None before the first."""
        if self.last_message_ts == 0:
            return None
        return time.time() - self.last_message_ts

    def get_health(self) -> FeedHealth:
        """Snapshot of connection health."""
        last_s_ago = self.last_message_s_ago()
        return FeedHealth(
            state=self.state.value,
            connected=self.connected,
            last_error=self.last_error,
            symbols=sorted(self.symbols),
            reconnect_attempt=self.reconnect_attempt,
            reconnects=self.reconnects,
            messages_received=self.messages_received,
            frames_dropped=self.frames_dropped,
            sink_size=len(self.sink),
            sink_capacity=self.sink.capacity,
            last_message_s_ago=round(last_s_ago, 1) if last_s_ago is not None else None,
        )
