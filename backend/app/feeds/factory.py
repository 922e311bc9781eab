"""Factories for trade transports and the coordinator wiring."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .cache import LargeTradeCache
from .channel import EventMultiplexer
from .connection import FeedConnection
from .coordinator import TRADES, TradeCoordinator
from .interface import StreamTransport, SubscriberStore, TradeNotifier
from .registry import FeedRegistry

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


def create_trade_transport(settings: Settings) -> StreamTransport:
    """Pick the trade stream transport from settings.

    - TRADE_FEED_SOURCE=simulator -> SimulatedTransport (no network)
    - Otherwise -> WebsocketTransport against the Hyperliquid stream URL
    """
    if settings.simulated:
        from .simulator import SimulatedTransport

        logger.info("Trade feed source: simulator")
        return SimulatedTransport()
    else:
        from .websocket_client import WebsocketTransport

        logger.info("Trade feed source: Hyperliquid websocket (%s)", settings.ws_url)
        return WebsocketTransport(url=settings.ws_url)


def create_coordinator(
    settings: Settings,
    store: SubscriberStore,
    notifier: TradeNotifier,
    transport: StreamTransport | None = None,
) -> TradeCoordinator:
    """Wire multiplexer, registry and coordinator together.

    Returns an unstarted coordinator. Caller must run ``await coordinator.run()``.
    """
    if transport is None:
        transport = create_trade_transport(settings)
    backoff = settings.backoff
    mux = EventMultiplexer()
    registry = FeedRegistry(
        connection_factory=lambda: FeedConnection(transport, backoff),
        sink=mux.source(TRADES),
    )
    return TradeCoordinator(
        store=store,
        registry=registry,
        notifier=notifier,
        mux=mux,
        min_trade_value_usd=settings.min_trade_value_usd,
        cache=LargeTradeCache(),
    )
