"""Trade feed subsystem: per-symbol streams and the alert coordinator.

Public API:
    Trade               - Immutable trade record parsed from the stream
    BackoffPolicy       - Reconnect delay policy
    EventMultiplexer    - Single queue merging trade and subscription events
    FeedConnection      - Per-symbol stream with reconnect supervision
    FeedRegistry        - At-most-one-feed-per-symbol bookkeeping
    TradeCoordinator    - Control loop: filter, fan-out, lazy teardown
    LargeTradeCache     - Latest alert-worthy trade per symbol
    create_coordinator  - Factory that wires the pieces together
    create_feeds_router - FastAPI router for status and SSE endpoints
"""

from .backoff import BackoffPolicy
from .cache import LargeTradeCache
from .channel import ChannelClosed, EventMultiplexer
from .connection import FeedConnection, FeedState
from .coordinator import TradeCoordinator
from .factory import create_coordinator, create_trade_transport
from .interface import StreamSession, StreamTransport
from .models import Subscriber, SubscriptionChange, Trade, normalize_symbol
from .registry import FeedError, FeedNotRunningError, FeedRegistry
from .stream import create_feeds_router

__all__ = [
    "BackoffPolicy",
    "ChannelClosed",
    "EventMultiplexer",
    "FeedConnection",
    "FeedError",
    "FeedNotRunningError",
    "FeedRegistry",
    "FeedState",
    "LargeTradeCache",
    "StreamSession",
    "StreamTransport",
    "Subscriber",
    "SubscriptionChange",
    "Trade",
    "TradeCoordinator",
    "create_coordinator",
    "create_feeds_router",
    "create_trade_transport",
    "normalize_symbol",
]
