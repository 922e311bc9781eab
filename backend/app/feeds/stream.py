"""HTTP status and SSE endpoints for the trade feeds."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .cache import LargeTradeCache
from .models import Trade
from .registry import FeedRegistry

logger = logging.getLogger(__name__)


def create_feeds_router(registry: FeedRegistry, cache: LargeTradeCache) -> APIRouter:
    """Create the router with references to the registry and trade cache."""
    router = APIRouter(prefix="/api", tags=["feeds"])

    @router.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @router.get("/feeds")
    async def list_feeds() -> dict:
        """Symbols with a live (or reconnecting) feed."""
        feeds = []
        for symbol in registry.active_symbols():
            handle = registry.get(symbol)
            if handle is None:
                continue  # Stopped between the two lookups
            feeds.append({"symbol": symbol, "state": handle.state.value})
        return {"feeds": feeds, "count": len(feeds), "large_trades": cache.total}

    @router.get("/stream/trades")
    async def stream_trades(request: Request) -> StreamingResponse:
        """SSE endpoint for large trades.

        On connect, sends the latest large trade of every symbol; afterwards
        one ``trade`` event per symbol whose latest large trade changed:

            id: 42
            event: trade
            data: {"symbol": "BTC", "side": "BUY", "notional": 60000.0, ...}

        A reconnecting client that sends ``Last-Event-ID`` only receives
        trades recorded after that id.
        """
        return StreamingResponse(
            _generate_events(cache, request, since=_last_event_id(request)),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    return router


def _last_event_id(request: Request) -> int:
    raw = request.headers.get("last-event-id", "")
    try:
        return max(int(raw), 0)
    except ValueError:
        return 0


def format_trade_event(version: int, trade: Trade) -> str:
    return f"id: {version}\nevent: trade\ndata: {json.dumps(trade.to_dict())}\n\n"


async def _generate_events(
    cache: LargeTradeCache,
    request: Request,
    interval: float = 0.5,
    since: int = 0,
) -> AsyncGenerator[str, None]:
    """Yield one SSE event per changed symbol until the client disconnects."""
    yield "retry: 1000\n\n"

    cursor = since
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s (from version %d)", client_ip, cursor)

    try:
        while not await request.is_disconnected():
            cursor, changed = cache.changed_since(cursor)
            for version, trade in changed:
                yield format_trade_event(version, trade)
            await asyncio.sleep(interval)
        logger.info("SSE client disconnected: %s", client_ip)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
