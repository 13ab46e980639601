"""
Protocols
Lightweight Protocols for interface clarity and decoupling.
"""

from .feed_transport import CallLater, ConnectFactory, FeedTransport, TimerHandle

__all__ = [
    "CallLater",
    "ConnectFactory",
    "FeedTransport",
    "TimerHandle",
]
