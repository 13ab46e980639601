# cryptodash/config.py
from dotenv import load_dotenv, find_dotenv
from urllib.parse import urlencode
import os
import logging

from cryptodash.errors import ConfigurationError

# Load nearest .env from project tree, don't override existing process env
load_dotenv(find_dotenv(usecwd=True), override=False)

logger = logging.getLogger(__name__)

DEFAULT_FEED_WS_URL = "wss://ws.finnhub.io"


def _parse_symbols(raw: str) -> list:
    return [s.strip() for s in raw.split(",") if s.strip()]


class Settings:
    """Unified configuration with deprecation mapping."""

    # Feed credentials
    FINNHUB_TOKEN = (os.getenv("FINNHUB_TOKEN") or os.getenv("NEXT_PUBLIC_FINNHUB_TOKEN") or "").strip()

    # Feed endpoint and subscriptions
    FEED_ENABLED = os.getenv("FEED_ENABLED", "true").strip().lower() == "true"
    FEED_WS_URL = (os.getenv("FEED_WS_URL") or DEFAULT_FEED_WS_URL).strip()
    FEED_SYMBOLS = (os.getenv("FEED_SYMBOLS") or "BINANCE:BTCUSDT").strip()

    # Message sink
    FEED_SINK_CAPACITY = int(os.getenv("FEED_SINK_CAPACITY", "500"))

    # Reconnection configuration
    FEED_RECONNECT_BASE_MS = int(os.getenv("FEED_RECONNECT_BASE_MS", "1000"))  # First reconnect delay
    FEED_BACKOFF_MAX_MS = int(os.getenv("FEED_BACKOFF_MAX_MS", "30000"))  # Maximum backoff delay
    FEED_OPEN_TIMEOUT_MS = int(os.getenv("FEED_OPEN_TIMEOUT_MS", "10000"))  # 0 disables the handshake bound

    # Logging
    LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    LOG_ROTATION = os.getenv("LOG_ROTATION", "false").strip().lower() == "true"

    @property
    def feed_symbols(self) -> list:
        """Configured symbols as a list."""
        return _parse_symbols(self.FEED_SYMBOLS)

    # Deprecation warnings
    def __init__(self):
        if os.getenv("NEXT_PUBLIC_FINNHUB_TOKEN") and not os.getenv("FINNHUB_TOKEN"):
            logger.warning("DEPRECATED: NEXT_PUBLIC_FINNHUB_TOKEN is deprecated, use FINNHUB_TOKEN instead")

settings = Settings()


def feed_uri(base_url: str, token: str) -> str:
    """Build the authenticated feed URI (`<base>?token=<token>`)."""
    token = (token or "").strip()
    if not token:
        raise ConfigurationError(
            "Missing FINNHUB_TOKEN",
            details={"setting": "FINNHUB_TOKEN"}
        )
    return f"{base_url}?{urlencode({'token': token})}"
