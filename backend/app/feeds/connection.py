"""Per-symbol streaming connection with reconnect supervision."""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import random

from .backoff import BackoffPolicy
from .channel import EventSource
from .interface import StreamSession, StreamTransport
from .models import Trade, normalize_symbol

logger = logging.getLogger(__name__)


class FeedState(str, enum.Enum):
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    READING = "reading"
    BACKOFF = "backoff"
    CLOSED = "closed"
    EXHAUSTED = "exhausted"


class _ConsumerGone(Exception):
    pass


def subscribe_message(symbol: str) -> str:
    """Control message that subscribes a session to one symbol's trades."""
    return json.dumps(
        {"method": "subscribe", "subscription": {"type": "trades", "coin": symbol}},
    )


def parse_trades(text: str | bytes) -> list[Trade]:
    """Extract trades from one stream message.

    Raises ValueError if the message is not a ``{"data": [...]}`` object.
    Individual malformed records are skipped.
    """
    payload = json.loads(text)
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise ValueError("message has no trade data list")
    trades = []
    for record in payload["data"]:
        try:
            trades.append(Trade.from_wire(record))
        except ValueError as e:
            logger.debug("Skipping trade record %r: %s", record, e)
    return trades


class FeedConnection:
    """Streams one symbol's trades into a sink until cancelled.

    Each attempt opens a session, subscribes, and forwards trades in receive
    order. Server closes and transport errors end the attempt; the next one
    starts after a BackoffPolicy delay. The attempt counter is local to one
    run() call, so only a fresh run() (i.e. the registry starting the feed
    again) resets it.

    Cancellation is checked before every attempt and raced against every read
    and every backoff wait; it always wins and closes the session gracefully.
    """

    def __init__(
        self,
        transport: StreamTransport,
        backoff: BackoffPolicy | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._transport = transport
        self._backoff = backoff or BackoffPolicy()
        self._rng = rng
        self.state = FeedState.CLOSED
        self.attempts = 0
        self.delays: list[float] = []  # Backoff delays used by the current run

    async def run(self, symbol: str, sink: EventSource, cancel: asyncio.Event) -> FeedState:
        symbol = normalize_symbol(symbol)
        self.attempts = 0
        self.delays = []

        while not cancel.is_set():
            self.attempts += 1
            self.state = FeedState.CONNECTING
            logger.info("Connecting %s trade feed (attempt %d)", symbol, self.attempts)
            try:
                await self._run_session(symbol, sink, cancel)
            except _ConsumerGone:
                logger.warning("Trade consumer gone, closing %s feed", symbol)
                break
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("%s feed connection failed: %s", symbol, e)

            if cancel.is_set():
                break
            if self._backoff.exhausted(self.attempts):
                logger.error("Max retries reached for %s feed, giving up", symbol)
                self.state = FeedState.EXHAUSTED
                return self.state

            delay = self._backoff.delay(self.attempts + 1, self._rng)
            self.delays.append(delay)
            self.state = FeedState.BACKOFF
            logger.warning("Retrying %s feed in %.0fms", symbol, delay * 1000)
            if await _wait_cancelled(cancel, delay):
                break

        self.state = FeedState.CLOSED
        logger.info("%s feed closed", symbol)
        return self.state

    async def _run_session(self, symbol: str, sink: EventSource, cancel: asyncio.Event) -> None:
        """One connect-subscribe-read attempt. Returns on server close or cancel."""
        session = await self._transport.connect()
        try:
            await session.send(subscribe_message(symbol))
            self.state = FeedState.SUBSCRIBED
            await self._read_loop(symbol, session, sink, cancel)
        finally:
            try:
                await session.close()
            except Exception as e:
                logger.debug("Error closing %s session: %s", symbol, e)

    async def _read_loop(
        self,
        symbol: str,
        session: StreamSession,
        sink: EventSource,
        cancel: asyncio.Event,
    ) -> None:
        self.state = FeedState.READING
        cancel_wait = asyncio.ensure_future(cancel.wait())
        try:
            while True:
                recv = asyncio.ensure_future(session.recv())
                await asyncio.wait({recv, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)

                if cancel.is_set():
                    recv.cancel()
                    await asyncio.gather(recv, return_exceptions=True)
                    logger.info("Shutdown signal for %s feed", symbol)
                    return

                message = recv.result()
                if message is None:
                    logger.info("%s feed closed by server", symbol)
                    return
                if not isinstance(message, str):
                    logger.debug("Ignoring non-text message on %s feed", symbol)
                    continue

                try:
                    trades = parse_trades(message)
                except ValueError as e:
                    logger.debug("Unparseable message on %s feed: %s (%s)", symbol, message[:200], e)
                    continue

                for trade in trades:
                    if not sink.send(trade):
                        raise _ConsumerGone()
        finally:
            cancel_wait.cancel()
            await asyncio.gather(cancel_wait, return_exceptions=True)


async def _wait_cancelled(cancel: asyncio.Event, timeout: float) -> bool:
    """Sleep up to ``timeout`` seconds. True if cancel was set meanwhile."""
    try:
        await asyncio.wait_for(cancel.wait(), timeout)
    except asyncio.TimeoutError:
        return False
    return True
