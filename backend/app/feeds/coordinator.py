"""Trade notification coordinator: the central control loop."""

from __future__ import annotations

import asyncio
import logging

from .cache import LargeTradeCache
from .channel import ChannelClosed, EventMultiplexer
from .interface import SubscriberStore, TradeNotifier
from .models import Subscriber, SubscriptionChange, Trade, normalize_symbol
from .registry import FeedNotRunningError, FeedRegistry

logger = logging.getLogger(__name__)

TRADES = "trades"
SUBSCRIPTIONS = "subscriptions"


class TradeCoordinator:
    """Merges trade and subscription events and fans out alerts.

    Trades come from every live feed through the ``trades`` producer end;
    subscription changes come from the chat bot through subscribe_intake().
    Feeds are torn down lazily: a feed is only stopped when one of its trades
    arrives and nobody is subscribed to the symbol any more.

    The loop ends once both producer ends are closed and drained.
    """

    def __init__(
        self,
        store: SubscriberStore,
        registry: FeedRegistry,
        notifier: TradeNotifier,
        mux: EventMultiplexer,
        min_trade_value_usd: float = 50_000.0,
        cache: LargeTradeCache | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._notifier = notifier
        self._mux = mux
        self._min_notional = min_trade_value_usd
        self._cache = cache if cache is not None else LargeTradeCache()
        self._trades = mux.source(TRADES)
        self._subscriptions = mux.source(SUBSCRIPTIONS)
        self._deliveries: set[asyncio.Task] = set()

    @property
    def registry(self) -> FeedRegistry:
        return self._registry

    @property
    def cache(self) -> LargeTradeCache:
        return self._cache

    @property
    def min_trade_value_usd(self) -> float:
        return self._min_notional

    def subscribe_intake(self, symbol: str) -> bool:
        """Ask for a feed for ``symbol``. Fire and forget; False after shutdown."""
        return self._subscriptions.send(SubscriptionChange(symbol=normalize_symbol(symbol)))

    def close_subscriptions(self) -> None:
        """Called by the chat side when it stops producing subscription changes."""
        self._subscriptions.close()

    async def start(self) -> None:
        """Open feeds for every symbol that already has subscribers."""
        symbols = await self._store.list_subscribed_symbols()
        logger.info("Seeding feeds for %d subscribed symbols", len(symbols))
        for symbol in symbols:
            self._ensure(symbol)

    async def run(self) -> None:
        try:
            await self.start()
        except Exception:
            # Feeds still start from subscribe events; existing subscribers wait for one.
            logger.exception("Seeding feeds from the store failed")
        logger.info("Coordinator listening")
        while True:
            try:
                event = await self._mux.get()
            except ChannelClosed:
                break
            try:
                if isinstance(event, Trade):
                    await self._handle_trade(event)
                elif isinstance(event, SubscriptionChange):
                    self._handle_subscription(event)
                else:
                    logger.warning("Ignoring unknown event %r", event)
            except Exception:
                logger.exception("Error processing %r", event)
        logger.info("Coordinator stopped: all event sources closed")

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Close both event sources, stop every feed, drain pending deliveries."""
        self._subscriptions.close()
        self._trades.close()
        await self._registry.stop_all(timeout=timeout)
        if self._deliveries:
            await asyncio.wait(set(self._deliveries), timeout=timeout)

    # --- Internal ---

    async def _handle_trade(self, trade: Trade) -> None:
        try:
            subscribers = await self._store.list_subscribers(trade.symbol)
        except Exception as e:
            logger.error("Subscriber lookup failed for %s, dropping trade: %s", trade.symbol, e)
            return

        if not subscribers:
            logger.warning("No subscribers for %s, stopping feed", trade.symbol)
            try:
                self._registry.stop(trade.symbol)
            except FeedNotRunningError:
                logger.info("Feed for %s already gone", trade.symbol)
            return

        try:
            notional = trade.notional
        except ValueError as e:
            logger.error("Bad price/size on %s trade (%s x %s): %s", trade.symbol, trade.price, trade.size, e)
            return

        if notional < self._min_notional:
            return

        logger.info(
            "Large %s trade: $%.2f, notifying %d subscribers",
            trade.symbol,
            notional,
            len(subscribers),
        )
        self._cache.record(trade)
        for subscriber in subscribers:
            task = asyncio.create_task(self._deliver(subscriber, trade, notional))
            self._deliveries.add(task)
            task.add_done_callback(self._deliveries.discard)

    def _handle_subscription(self, event: SubscriptionChange) -> None:
        logger.info("Handling subscription to %s", event.symbol)
        self._ensure(event.symbol)

    def _ensure(self, symbol: str) -> None:
        try:
            self._registry.ensure(symbol)
        except Exception as e:
            logger.error("Failed to start feed for %s: %s", symbol, e)

    async def _deliver(self, subscriber: Subscriber, trade: Trade, notional: float) -> None:
        try:
            delivered = await self._notifier.notify(
                subscriber.chat_id,
                trade.symbol,
                trade.side,
                trade.price,
                notional,
            )
        except Exception as e:
            logger.error("Failed to send notification to chat %s: %s", subscriber.chat_id, e)
            return
        if not delivered:
            logger.warning("Notification to chat %s was not delivered", subscriber.chat_id)
