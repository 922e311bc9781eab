"""Hyperliquid websocket transport."""

from __future__ import annotations

import logging

import websockets
from websockets.exceptions import ConnectionClosedOK

from .interface import StreamSession, StreamTransport

logger = logging.getLogger(__name__)

DEFAULT_WS_URL = "wss://api.hyperliquid.xyz/ws"


class WebsocketSession(StreamSession):
    """StreamSession over a ``websockets`` client connection."""

    def __init__(self, ws) -> None:
        self._ws = ws

    async def send(self, message: str) -> None:
        await self._ws.send(message)

    async def recv(self) -> str | bytes | None:
        try:
            return await self._ws.recv()
        except ConnectionClosedOK:
            # Clean close by the server; abnormal closes propagate as errors.
            return None

    async def close(self) -> None:
        await self._ws.close()


class WebsocketTransport(StreamTransport):
    """Opens websocket sessions to the exchange's public stream endpoint."""

    def __init__(
        self,
        url: str = DEFAULT_WS_URL,
        ping_interval: float | None = 20.0,
        ping_timeout: float | None = 20.0,
        open_timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._ping_interval = ping_interval
        self._ping_timeout = ping_timeout
        self._open_timeout = open_timeout

    @property
    def url(self) -> str:
        return self._url

    async def connect(self) -> WebsocketSession:
        ws = await websockets.connect(
            self._url,
            ping_interval=self._ping_interval,
            ping_timeout=self._ping_timeout,
            open_timeout=self._open_timeout,
        )
        logger.debug("Websocket connected: %s", self._url)
        return WebsocketSession(ws)
