"""Abstract interfaces: stream transports, the subscriber store and the trade notifier."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol

from .models import Subscriber


class StreamSession(ABC):
    """One open streaming session to the exchange.

    Lifecycle (driven by FeedConnection):
        session = await transport.connect()
        await session.send('{"method": "subscribe", ...}')
        while (message := await session.recv()) is not None:
            ...
        await session.close()
    """

    @abstractmethod
    async def send(self, message: str) -> None:
        """Send one text frame. Raises on transport failure."""

    @abstractmethod
    async def recv(self) -> str | bytes | None:
        """Wait for the next frame.

        Returns None when the server closed the session cleanly. Raises on
        transport errors (abnormal close, network failure).
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the session gracefully (close frame). Safe to call twice."""


class StreamTransport(ABC):
    """Factory for streaming sessions. One transport is shared by every feed."""

    @abstractmethod
    async def connect(self) -> StreamSession:
        """Open a new session. Raises on connection failure."""


class SubscriberStore(Protocol):
    """Subscription queries the coordinator depends on."""

    async def list_subscribed_symbols(self) -> list[str]: ...

    async def list_subscribers(self, symbol: str) -> list[Subscriber]: ...


class TradeNotifier(Protocol):
    """Delivers one trade alert to one chat. Returns False on failure."""

    async def notify(
        self,
        chat_id: int,
        symbol: str,
        side: str,
        price: str,
        notional: float,
    ) -> bool: ...
