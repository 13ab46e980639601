"""
Observability metrics for the live feed.
Provides WebSocket and message sink counters without a Prometheus dependency.
"""

from fastapi import APIRouter, Response
from typing import Dict, List
import json

class SimpleMetrics:
    """Simple metrics tracking for observability."""

    def __init__(self):
        self.counters: Dict[str, int] = {}
        self.gauges: Dict[str, float] = {}

    @staticmethod
    def _key(name: str, labels: Dict[str, str] = None) -> str:
        if not labels:
            return name
        return f"{name}_{json.dumps(labels, sort_keys=True)}"

    def inc_counter(self, name: str, labels: Dict[str, str] = None, value: int = 1):
        """Increment a counter."""
        key = self._key(name, labels)
        self.counters[key] = self.counters.get(key, 0) + value

    def set_gauge(self, name: str, value: float, labels: Dict[str, str] = None):
        """Set a gauge value."""
        self.gauges[self._key(name, labels)] = value

    def get_counter(self, name: str, labels: Dict[str, str] = None) -> int:
        return self.counters.get(self._key(name, labels), 0)

    def get_metrics(self) -> str:
        """Get metrics in text format."""
        lines: List[str] = []
        for key, value in sorted(self.counters.items()):
            lines.append(f"# TYPE {key.split('_{')[0]} counter")
            lines.append(f"{key} {value}")
        for key, value in sorted(self.gauges.items()):
            lines.append(f"# TYPE {key.split('_{')[0]} gauge")
            lines.append(f"{key} {value}")
        return "\n".join(lines)

    def reset(self):
        self.counters.clear()
        self.gauges.clear()

# Global metrics instance
_metrics = SimpleMetrics()

def get_metrics() -> SimpleMetrics:
    return _metrics

def record_ws_reconnect():
    """Record a scheduled WebSocket reconnection."""
    _metrics.inc_counter("feed_ws_reconnects")

def record_ws_open():
    """Record a successful WebSocket open."""
    _metrics.inc_counter("feed_ws_opens")

def record_ws_message(msg_type: str):
    """Record a WebSocket message appended to the sink."""
    _metrics.inc_counter("feed_ws_messages", {"type": msg_type})

def record_ws_dropped():
    """Record an undecodable frame."""
    _metrics.inc_counter("feed_ws_dropped")

def record_ws_connected(connected: bool):
    _metrics.set_gauge("feed_ws_connected", 1.0 if connected else 0.0)

def create_metrics_router() -> APIRouter:
    """Create metrics router."""
    router = APIRouter()

    @router.get("/metrics")
    async def metrics():
        """Get metrics in text format."""
        return Response(content=_metrics.get_metrics(), media_type="text/plain")

    return router
