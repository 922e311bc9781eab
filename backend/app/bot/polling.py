"""Telegram long-polling loop feeding the command handler."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .commands import CommandHandler
from .telegram import TelegramClient, TelegramError

logger = logging.getLogger(__name__)


class TelegramBot:
    """Polls getUpdates and answers commands until stopped.

    The client is shared with TelegramNotifier, so stop() leaves it open;
    the owner closes it once alert delivery has finished.

    Lifecycle:
        bot = TelegramBot(client, handler, on_close=coordinator.close_subscriptions)
        await bot.start()
        ...
        await bot.stop()
        await client.close()
    """

    def __init__(
        self,
        client: TelegramClient,
        handler: CommandHandler,
        poll_timeout: int = 30,
        error_delay: float = 5.0,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self._client = client
        self._handler = handler
        self._poll_timeout = poll_timeout
        self._error_delay = error_delay
        self._on_close = on_close
        self._offset: int | None = None
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        me = await self._client.get_me()
        logger.info("Bot started: @%s", me.get("username", "?"))
        self._task = asyncio.create_task(self.run(), name="telegram-poller")

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Telegram polling stopped")

    async def run(self) -> None:
        try:
            while True:
                await self.poll_once()
        finally:
            if self._on_close is not None:
                self._on_close()

    async def poll_once(self) -> int:
        """Fetch one batch of updates and handle it. Returns the number handled."""
        try:
            updates = await self._client.get_updates(offset=self._offset, timeout=self._poll_timeout)
        except TelegramError as e:
            logger.error("Polling Telegram failed: %s", e)
            await asyncio.sleep(self._error_delay)
            return 0

        for update in updates:
            self._offset = update["update_id"] + 1
            try:
                await self._handle_update(update)
            except Exception:
                logger.exception("Error handling update %s", update.get("update_id"))
        return len(updates)

    async def _handle_update(self, update: dict) -> None:
        message = update.get("message")
        if not message or "text" not in message:
            return
        chat_id = message["chat"]["id"]
        user_id = message.get("from", {}).get("id", chat_id)

        reply = await self._handler.handle(user_id, chat_id, message["text"])
        if reply is None:
            return
        try:
            await self._client.send_message(chat_id, reply)
        except TelegramError as e:
            logger.error("Failed to reply to chat %s: %s", chat_id, e)
