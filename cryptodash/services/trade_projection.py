"""
Trade projection over opaque feed messages.
Only `{"type":"trade","data":[...]}` frames are interpreted; everything else is skipped.
"""

import logging
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from cryptodash.schemas.feed import TradeRecord

logger = logging.getLogger(__name__)


def extract_trades(messages: Iterable[Any]) -> List[TradeRecord]:
    """Flatten trade frames into TradeRecords in message order."""
    trades: List[TradeRecord] = []
    for message in messages:
        if not isinstance(message, dict) or message.get("type") != "trade":
            continue
        data = message.get("data")
        if not isinstance(data, list):
            continue
        for entry in data:
            try:
                trades.append(TradeRecord.model_validate(entry))
            except ValidationError:
                logger.debug(f"Skipping malformed trade entry: {entry!r}")
    return trades


def latest_price_by_symbol(messages: Iterable[Any]) -> Dict[str, float]:
    """Last traded price per symbol; trades without a symbol are ignored."""
    prices: Dict[str, float] = {}
    for trade in extract_trades(messages):
        if trade.symbol:
            prices[trade.symbol] = trade.price
    return prices
