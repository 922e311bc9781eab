"""Single-queue event multiplexer for the coordinator loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)

_WAKE = object()  # Queued when a producer end closes so a waiting get() re-checks


class ChannelClosed(Exception):
    """Raised by EventMultiplexer.get() once every producer is closed and drained."""


class EventSource:
    """Producer end of an EventMultiplexer.

    send() never blocks. It returns False when this end is closed or the
    consumer has gone away, which producers treat as "stop producing".
    """

    def __init__(self, name: str, mux: EventMultiplexer) -> None:
        self.name = name
        self._mux = mux
        self._closed = False

    def send(self, item: Any) -> bool:
        if self._closed or self._mux.consumer_closed:
            return False
        self._mux._queue.put_nowait(item)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._mux._queue.put_nowait(_WAKE)
        logger.debug("Event source %s closed", self.name)

    @property
    def closed(self) -> bool:
        return self._closed


class EventMultiplexer:
    """Merges several producers into one FIFO queue.

    Events come out in arrival order, so no producer can starve another.
    The buffer is unbounded.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._sources: dict[str, EventSource] = {}
        self._consumer_closed = False

    def source(self, name: str) -> EventSource:
        """Return the producer end called ``name``, creating it on first use."""
        src = self._sources.get(name)
        if src is None:
            src = EventSource(name, self)
            self._sources[name] = src
        return src

    async def get(self) -> Any:
        """Next event from any producer. Raises ChannelClosed at end of stream."""
        while True:
            if self._queue.empty() and self._all_closed():
                raise ChannelClosed()
            item = await self._queue.get()
            if item is _WAKE:
                continue
            return item

    def close(self) -> None:
        """Consumer side shutdown: every later send() returns False."""
        self._consumer_closed = True
        for src in self._sources.values():
            src.close()

    @property
    def consumer_closed(self) -> bool:
        return self._consumer_closed

    def _all_closed(self) -> bool:
        return bool(self._sources) and all(src.closed for src in self._sources.values())
