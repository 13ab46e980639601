"""
Crypto dashboard backend - FastAPI app

Runs one live price feed session and exposes it to the dashboard.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from cryptodash.config import settings
from cryptodash.observability.logs import setup_logging, setup_log_rotation
from cryptodash.observability.metrics import create_metrics_router
from cryptodash.routes_feed import router as feed_router
from cryptodash.services.feed_session import describe, subscribe

# Setup logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="cryptodash live feed", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(feed_router)
app.include_router(create_metrics_router())

app.state.feed = None

@app.on_event("startup")
async def startup_event():
    """Open the live feed session."""
    if settings.LOG_ROTATION:
        setup_log_rotation()

    if not settings.FEED_ENABLED:
        logger.info("Live feed disabled, skipping start")
        return

    feed = await subscribe(settings.feed_symbols)
    app.state.feed = feed
    if feed.released:
        logger.error("Live feed not started: FEED_SYMBOLS is empty")
    elif feed.last_error():
        # Configuration errors are reported, not raised
        logger.error(f"Live feed not started: {feed.last_error()}")
    else:
        logger.info(f"Live feed started for symbols: {feed.symbols}")

@app.on_event("shutdown")
async def shutdown_event():
    """Release the live feed session."""
    feed = app.state.feed
    if feed is None:
        return
    logger.info(f"Live feed final status: {describe(feed)}")
    await feed.close()
    app.state.feed = None
    logger.info("Live feed stopped")

@app.get("/health")
async def health():
    feed = app.state.feed
    return {
        "ok": True,
        "feed_connected": bool(feed and feed.connected()),
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
