"""
Logging setup for the backend.
Console logging plus optional daily rotation to .run/backend.log
"""

import json
import os
import logging
from logging.handlers import TimedRotatingFileHandler
from typing import Any

from cryptodash.errors import sanitize_error_message

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)

def setup_log_rotation(log_dir: str = ".run", filename: str = "backend.log"):
    """Setup log rotation for backend logs."""
    try:
        # Ensure log directory exists
        os.makedirs(log_dir, exist_ok=True)

        # Create rotating file handler
        handler = TimedRotatingFileHandler(
            filename=os.path.join(log_dir, filename),
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        # Add to root logger
        logging.getLogger().addHandler(handler)

        logger.info("Log rotation configured (daily, keep 7 days)")
        return handler

    except OSError as e:
        logger.error(f"Failed to setup log rotation: {e}")
        return None

def log_event(log: logging.Logger, level: int, evt: str, **fields: Any) -> None:
    """Emit one structured JSON log line for monitoring."""
    payload = {"evt": evt}
    for key, value in fields.items():
        payload[key] = sanitize_error_message(value) if isinstance(value, str) else value
    log.log(level, json.dumps(payload, default=str))
