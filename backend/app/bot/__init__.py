"""Chat side of the service: subscriptions, symbol validation, Telegram I/O.

Public API:
    SubscriptionStore - SQLite store of user -> symbol subscriptions
    SymbolValidator   - Cached check that a symbol is listed on Hyperliquid
    TelegramClient    - Bot API client
    TelegramNotifier  - Sends trade alerts to chats
    CommandHandler    - /start, /subscribe, /unsubscribe, /list, /help
    TelegramBot       - Long-polling loop wiring updates to commands
"""

from .commands import CommandHandler, parse_command
from .polling import TelegramBot
from .store import SubscriptionStore
from .telegram import LogNotifier, TelegramClient, TelegramError, TelegramNotifier, format_trade_alert
from .validator import SymbolLookupError, SymbolValidator

__all__ = [
    "CommandHandler",
    "LogNotifier",
    "SubscriptionStore",
    "SymbolLookupError",
    "SymbolValidator",
    "TelegramBot",
    "TelegramClient",
    "TelegramError",
    "TelegramNotifier",
    "format_trade_alert",
    "parse_command",
]
