"""Service bootstrap: logging, wiring and the HTTP server."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from .bot import (
    CommandHandler,
    LogNotifier,
    SubscriptionStore,
    SymbolValidator,
    TelegramBot,
    TelegramClient,
    TelegramNotifier,
)
from .config import Settings
from .feeds import create_coordinator, create_feeds_router
from .feeds.interface import StreamTransport

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _log_task_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Task %s crashed", task.get_name(), exc_info=exc)


def create_app(settings: Settings, transport: StreamTransport | None = None) -> FastAPI:
    """Build the FastAPI app; the lifespan starts and stops every component."""
    store = SubscriptionStore(settings.database_path)
    client = TelegramClient(settings.telegram_bot_token) if settings.telegram_bot_token else None
    notifier = TelegramNotifier(client) if client is not None else LogNotifier()
    coordinator = create_coordinator(settings, store, notifier, transport=transport)

    bot = None
    if client is not None:
        validator = SymbolValidator(
            api_url=settings.api_url,
            refresh_interval=settings.symbol_refresh_hours * 3600,
        )
        handler = CommandHandler(
            store=store,
            validator=validator,
            on_subscribed=coordinator.subscribe_intake,
            default_symbol=settings.default_symbol,
            min_trade_value_usd=settings.min_trade_value_usd,
        )
        bot = TelegramBot(client, handler, on_close=coordinator.close_subscriptions)
    else:
        logger.warning("No TELEGRAM_BOT_TOKEN: chat commands disabled, alerts are only logged")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.initialize()
        coordinator_task = asyncio.create_task(coordinator.run(), name="coordinator")
        coordinator_task.add_done_callback(_log_task_exit)
        if bot is not None:
            await bot.start()
        logger.info("Service started (min trade value $%.0f)", settings.min_trade_value_usd)
        try:
            yield
        finally:
            # Alert deliveries share the Telegram client, so it is closed last.
            if bot is not None:
                await bot.stop()
            await coordinator.shutdown()
            try:
                await asyncio.wait_for(coordinator_task, timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("Coordinator did not stop in time")
            except Exception as e:
                logger.error("Coordinator exited with an error: %s", e)
            if client is not None:
                await client.close()
            logger.info("Service stopped")

    app = FastAPI(title="Hyperliquid Trade Alerts", lifespan=lifespan)
    app.include_router(create_feeds_router(coordinator.registry, coordinator.cache))
    app.state.coordinator = coordinator
    return app


def main() -> None:
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info("Starting Hyperliquid trade alert service")
    uvicorn.run(
        create_app(settings),
        host=settings.http_host,
        port=settings.http_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
