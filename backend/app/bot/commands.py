"""Chat command parsing and handling."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..feeds.models import normalize_symbol
from .store import SubscriptionStore
from .validator import SymbolLookupError, SymbolValidator

logger = logging.getLogger(__name__)

COMMANDS = ("start", "subscribe", "unsubscribe", "list", "help")

GENERIC_ERROR = "Sorry, there was an error. Please try again."


@dataclass(frozen=True, slots=True)
class Command:
    name: str
    arg: str = ""


def parse_command(text: str) -> Command | None:
    """Parse ``/name[@Bot] [arg]``. Returns None for anything that isn't a known command."""
    text = text.strip()
    if not text.startswith("/"):
        return None
    head, _, rest = text[1:].partition(" ")
    name = head.split("@", 1)[0].lower()
    if name not in COMMANDS:
        return None
    return Command(name=name, arg=rest.strip())


class CommandHandler:
    """Turns chat commands into store updates, feed requests and reply text.

    ``on_subscribed`` is called with the symbol after every new subscription;
    in the service it is TradeCoordinator.subscribe_intake.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        validator: SymbolValidator,
        on_subscribed: Callable[[str], object],
        default_symbol: str = "BTC",
        min_trade_value_usd: float = 50_000.0,
    ) -> None:
        self._store = store
        self._validator = validator
        self._on_subscribed = on_subscribed
        self._default_symbol = normalize_symbol(default_symbol)
        self._min_trade_value = min_trade_value_usd

    async def handle(self, user_id: int, chat_id: int, text: str) -> str | None:
        """Handle one message. Returns the reply text, or None to stay silent."""
        command = parse_command(text)
        if command is None:
            return None
        logger.info("Received command from user %s: /%s %s", user_id, command.name, command.arg)

        if command.name == "start":
            return await self._start(user_id, chat_id)
        if command.name == "subscribe":
            return await self._subscribe(user_id, chat_id, command.arg)
        if command.name == "unsubscribe":
            return await self._unsubscribe(user_id, command.arg)
        if command.name == "list":
            return await self._list(user_id)
        return self.help_text()

    def help_text(self) -> str:
        return (
            "Hyperliquid Trade Alerts Help\n\n"
            f"I monitor large trades (${self._min_trade_value:,.0f}+) on Hyperliquid "
            "and send you notifications.\n\n"
            "Available Commands:\n"
            f"/start - Get started and subscribe to {self._default_symbol}\n"
            "/subscribe <coin> - Subscribe to a coin (e.g. /subscribe ETH)\n"
            "/unsubscribe <coin> - Unsubscribe from a coin\n"
            "/list - Show your current subscriptions\n"
            "/help - Show this help message\n\n"
            "Examples:\n"
            "/subscribe SOL - Get SOL trade alerts\n"
            "/unsubscribe BTC - Stop BTC trade alerts\n"
            "/list - See all your subscriptions"
        )

    # --- Internal ---

    async def _start(self, user_id: int, chat_id: int) -> str:
        symbol = self._default_symbol
        try:
            created = await self._store.add_subscription(user_id, chat_id, symbol)
        except Exception as e:
            logger.error("Failed to auto-subscribe user %s to %s: %s", user_id, symbol, e)
            return "Welcome to Hyperliquid Trade Alerts!\n\nUse /subscribe <coin> to get started!"

        if not created:
            return (
                "Welcome back to Hyperliquid Trade Alerts!\n\n"
                "Use /subscribe <coin> to add more subscriptions!"
            )
        logger.info("New user %s auto-subscribed to %s", user_id, symbol)
        self._notify_subscribed(symbol)
        return (
            "Welcome to Hyperliquid Trade Alerts!\n\n"
            f"You've been automatically subscribed to {symbol} trades.\n\n"
            "Use /subscribe <coin> to add more coins!"
        )

    async def _subscribe(self, user_id: int, chat_id: int, arg: str) -> str:
        if not arg:
            return "Please specify a coin. Example: /subscribe ETH"
        symbol = normalize_symbol(arg)

        try:
            listed = await self._validator.exists(symbol)
        except SymbolLookupError as e:
            logger.error("Couldn't validate %s for user %s: %s", symbol, user_id, e)
            return "Sorry, there was an error validating the coin. Please try again."
        if not listed:
            return f"{symbol} is not available on Hyperliquid. Use /help to see valid coins."

        try:
            created = await self._store.add_subscription(user_id, chat_id, symbol)
        except Exception as e:
            logger.error("DB error for user %s subscribing to %s: %s", user_id, symbol, e)
            return GENERIC_ERROR
        if not created:
            return f"You're already subscribed to {symbol} trades."

        logger.info("User %s subscribed to %s", user_id, symbol)
        self._notify_subscribed(symbol)
        return f"Successfully subscribed to {symbol} trades!"

    async def _unsubscribe(self, user_id: int, arg: str) -> str:
        if not arg:
            return "Please specify a coin. Example: /unsubscribe ETH"
        symbol = normalize_symbol(arg)

        try:
            removed = await self._store.remove_subscription(user_id, symbol)
        except Exception as e:
            logger.error("DB error for user %s unsubscribing from %s: %s", user_id, symbol, e)
            return GENERIC_ERROR
        if not removed:
            return f"You weren't subscribed to {symbol} trades."
        # The feed is left running; the coordinator stops it on its next trade.
        logger.info("User %s unsubscribed from %s", user_id, symbol)
        return f"Successfully unsubscribed from {symbol} trades."

    async def _list(self, user_id: int) -> str:
        try:
            symbols = await self._store.list_user_symbols(user_id)
        except Exception as e:
            logger.error("DB error getting subscriptions for user %s: %s", user_id, e)
            return "Sorry, there was an error retrieving your subscriptions. Please try again."
        if not symbols:
            return "You're not subscribed to any coins.\n\nUse /subscribe <coin> to get started!"
        return "Your Subscriptions:\n\n" + ", ".join(symbols)

    def _notify_subscribed(self, symbol: str) -> None:
        try:
            self._on_subscribed(symbol)
        except Exception as e:
            logger.error("Couldn't send subscription event for %s: %s", symbol, e)
