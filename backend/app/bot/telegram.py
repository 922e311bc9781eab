"""Telegram Bot API client and trade alert notifier."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.telegram.org"


class TelegramError(Exception):
    """The Bot API rejected a call or could not be reached."""


class TelegramClient:
    """Minimal async Bot API client (getMe, getUpdates, sendMessage).

    The underlying aiohttp session is created on first use and must be
    released with close(). Calls made after close() raise TelegramError.
    """

    def __init__(self, token: str, api_base: str = DEFAULT_API_BASE, request_timeout: float = 10.0) -> None:
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._request_timeout = request_timeout
        self._session: aiohttp.ClientSession | None = None
        self._closed = False

    async def get_me(self) -> dict:
        return await self._call("getMe", {})

    async def send_message(self, chat_id: int, text: str) -> dict:
        return await self._call(
            "sendMessage",
            {"chat_id": chat_id, "text": text, "disable_web_page_preview": True},
        )

    async def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[dict]:
        """Long-poll for updates. ``timeout`` is the server-side wait in seconds."""
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset
        return await self._call("getUpdates", payload, timeout=timeout + self._request_timeout)

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        self._closed = True
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # --- Internal ---

    async def _call(self, method: str, payload: dict, timeout: float | None = None) -> Any:
        if self._closed:
            raise TelegramError(f"{method} failed: client is closed")
        session = self._get_session()
        url = f"{self._api_base}/bot{self._token}/{method}"
        try:
            async with session.post(
                url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=timeout or self._request_timeout),
            ) as resp:
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TelegramError(f"{method} failed: {e}") from e

        if not isinstance(body, dict) or not body.get("ok"):
            description = body.get("description") if isinstance(body, dict) else body
            raise TelegramError(f"{method} rejected: {description}")
        return body.get("result")

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session


def format_trade_alert(symbol: str, side: str, price: str, notional: float) -> str:
    side_text = "BUY" if side == "B" else "SELL"
    return f"{symbol} Trade Alert\n\nAmount: ${notional:.2f}\nType: {side_text}\nPrice: ${price}"


class TelegramNotifier:
    """Sends trade alerts. One message per call, no retries."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def notify(self, chat_id: int, symbol: str, side: str, price: str, notional: float) -> bool:
        try:
            await self._client.send_message(chat_id, format_trade_alert(symbol, side, price, notional))
        except TelegramError as e:
            logger.error("Failed to send %s alert to chat %s: %s", symbol, chat_id, e)
            return False
        logger.info("Sent %s trade notification to chat %s", symbol, chat_id)
        return True


class LogNotifier:
    """Notifier used when no bot token is configured: alerts go to the log."""

    async def notify(self, chat_id: int, symbol: str, side: str, price: str, notional: float) -> bool:
        logger.info("Alert for chat %s: %s", chat_id, format_trade_alert(symbol, side, price, notional).replace("\n", " "))
        return True
