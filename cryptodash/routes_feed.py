"""
Live feed endpoints.
Read access to the session's message sink plus subscription control.
"""

from fastapi import APIRouter, Query, Request
from typing import Any, Dict, List
import logging

from cryptodash.errors import NetworkError, ValidationError, create_http_exception
from cryptodash.schemas.feed import FeedHealth, SymbolsUpdate, TradeRecord
from cryptodash.services.feed_session import FeedHandle
from cryptodash.services.trade_projection import latest_price_by_symbol

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feed", tags=["feed"])


def _get_feed(request: Request) -> FeedHandle:
    feed = getattr(request.app.state, "feed", None)
    if feed is None or feed.released:
        raise create_http_exception(NetworkError("Live feed is not running"))
    return feed


@router.get("/status", response_model=FeedHealth)
async def feed_status(request: Request) -> FeedHealth:
    """Connection state, last error and sink usage."""
    return _get_feed(request).health()


@router.get("/messages")
async def feed_messages(request: Request, limit: int = Query(100, ge=1, le=10000)) -> Dict[str, Any]:
    """Most recent raw messages, oldest first."""
    messages = _get_feed(request).messages()
    recent = list(messages[-limit:])
    return {"count": len(recent), "messages": recent}


@router.get("/trades", response_model=List[TradeRecord])
async def feed_trades(request: Request, limit: int = Query(100, ge=1, le=10000)) -> List[TradeRecord]:
    """Trade records projected from the current messages, oldest first."""
    return _get_feed(request).trades(limit)


@router.get("/prices")
async def feed_prices(request: Request) -> Dict[str, float]:
    """Last traded price per symbol."""
    return latest_price_by_symbol(_get_feed(request).messages())


@router.put("/symbols", response_model=FeedHealth)
async def update_symbols(request: Request, body: SymbolsUpdate) -> FeedHealth:
    """Replace the subscription set of the live session."""
    feed = _get_feed(request)
    symbols = [s.strip() for s in body.symbols if s.strip()]
    if not symbols:
        raise create_http_exception(ValidationError("At least one symbol is required"))

    await feed.update_symbols(symbols)
    logger.info(f"Feed symbols updated via /feed/symbols: {symbols}")
    return feed.health()
