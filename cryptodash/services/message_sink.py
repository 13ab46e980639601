"""
Message sink for inbound feed frames.
Fixed-capacity ring buffer; the oldest frame is evicted once full.
"""

from typing import Any, Generic, List, Tuple, TypeVar
from threading import RLock

T = TypeVar('T')

DEFAULT_CAPACITY = 500

class MessageSink(Generic[T]):
    """Thread-safe ring buffer with fixed capacity, oldest entry first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if not isinstance(capacity, int) or capacity <= 0:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")
        self.capacity = capacity
        self._buffer: List[T] = []
        self._head = 0  # index of the oldest entry once full
        self._lock = RLock()
        self.total_appended = 0
        self.evicted = 0

    def append(self, message: T) -> None:
        """Add message to the sink, overwriting the oldest if full."""
        with self._lock:
            if len(self._buffer) < self.capacity:
                self._buffer.append(message)
            else:
                self._buffer[self._head] = message
                self._head = (self._head + 1) % self.capacity
                self.evicted += 1
            self.total_appended += 1

    def snapshot(self) -> Tuple[T, ...]:
        """Point-in-time view of all messages in arrival order (oldest first)."""
        with self._lock:
            return tuple(self._buffer[self._head:] + self._buffer[:self._head])

    def latest(self, n: int) -> List[T]:
        """Get the n most recent messages (newest first)."""
        if n <= 0:
            return []
        items = self.snapshot()
        return list(reversed(items[-n:]))

    def clear(self) -> None:
        """Empty the sink."""
        with self._lock:
            self._buffer.clear()
            self._head = 0

    def __len__(self) -> int:
        return len(self._buffer)

    def __bool__(self) -> bool:
        return len(self._buffer) > 0

    def __repr__(self) -> str:
        return f"MessageSink(capacity={self.capacity}, size={len(self)})"


def new_sink(capacity: int = DEFAULT_CAPACITY) -> "MessageSink[Any]":
    """Create an empty sink for a feed session."""
    return MessageSink(capacity)
