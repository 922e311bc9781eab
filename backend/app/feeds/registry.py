"""Registry of live per-symbol trade feeds."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from threading import Lock

from .channel import EventSource
from .connection import FeedConnection, FeedState
from .models import normalize_symbol

logger = logging.getLogger(__name__)


class FeedError(Exception):
    """Base class for feed lifecycle errors."""


class FeedNotRunningError(FeedError):
    """stop() was called for a symbol with no live feed."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"no active feed for {symbol}")
        self.symbol = symbol


@dataclass(eq=False)
class FeedHandle:
    """Registry-owned handle for one feed's supervisor task."""

    symbol: str
    connection: FeedConnection
    cancel: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task | None = None

    @property
    def state(self) -> FeedState:
        return self.connection.state


class FeedRegistry:
    """Keeps at most one streaming connection per symbol.

    Shared by the coordinator and every feed's supervisor task. The lock is
    only held for dict insert/remove, never across I/O.

    Lifecycle:
        registry = FeedRegistry(lambda: FeedConnection(transport), sink)
        registry.ensure("BTC")      # starts a feed
        registry.ensure("BTC")      # no-op
        registry.stop("BTC")        # signals cancellation
        await registry.stop_all()   # shutdown
    """

    def __init__(
        self,
        connection_factory: Callable[[], FeedConnection],
        sink: EventSource,
    ) -> None:
        self._connection_factory = connection_factory
        self._sink = sink
        self._feeds: dict[str, FeedHandle] = {}
        self._lock = Lock()

    def ensure(self, symbol: str) -> bool:
        """Start a feed for ``symbol`` unless one exists. Returns True if started."""
        symbol = normalize_symbol(symbol)
        with self._lock:
            if symbol in self._feeds:
                logger.debug("Feed already exists for %s", symbol)
                return False
            handle = FeedHandle(symbol=symbol, connection=self._connection_factory())
            self._feeds[symbol] = handle

        supervisor = self._supervise(handle)
        try:
            handle.task = asyncio.create_task(supervisor, name=f"feed-{symbol}")
        except Exception:
            supervisor.close()
            with self._lock:
                if self._feeds.get(symbol) is handle:
                    del self._feeds[symbol]
            raise
        logger.info("Feed started for %s", symbol)
        return True

    def stop(self, symbol: str) -> None:
        """Signal the feed for ``symbol`` to close and forget it.

        Raises FeedNotRunningError if there is no feed for ``symbol``.
        """
        symbol = normalize_symbol(symbol)
        with self._lock:
            handle = self._feeds.pop(symbol, None)
        if handle is None:
            raise FeedNotRunningError(symbol)
        handle.cancel.set()
        logger.info("Shutdown signal sent to %s feed", symbol)

    async def stop_all(self, timeout: float = 5.0) -> None:
        """Cancel every feed and wait for the supervisors to exit."""
        with self._lock:
            handles = list(self._feeds.values())
            self._feeds.clear()
        for handle in handles:
            handle.cancel.set()
        tasks = [h.task for h in handles if h.task is not None]
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Stopped %d feeds", len(handles))

    def get(self, symbol: str) -> FeedHandle | None:
        with self._lock:
            return self._feeds.get(normalize_symbol(symbol))

    def active_symbols(self) -> list[str]:
        with self._lock:
            return sorted(self._feeds)

    def __len__(self) -> int:
        with self._lock:
            return len(self._feeds)

    def __contains__(self, symbol: str) -> bool:
        with self._lock:
            return normalize_symbol(symbol) in self._feeds

    # --- Internal ---

    async def _supervise(self, handle: FeedHandle) -> None:
        try:
            final = await handle.connection.run(handle.symbol, self._sink, handle.cancel)
            logger.info("%s feed supervisor exited (%s)", handle.symbol, final.value)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s feed supervisor crashed", handle.symbol)
        finally:
            with self._lock:
                # A newer feed for the same symbol may have replaced this one.
                if self._feeds.get(handle.symbol) is handle:
                    del self._feeds[handle.symbol]
                    logger.info("Removed %s feed", handle.symbol)
