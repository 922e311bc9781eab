"""Service configuration from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .feeds.backoff import BackoffPolicy

SIMULATOR = "simulator"
HYPERLIQUID = "hyperliquid"


class ConfigError(Exception):
    """Raised when the environment does not describe a runnable service."""


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str = ""
    ws_url: str = "wss://api.hyperliquid.xyz/ws"
    api_url: str = "https://api.hyperliquid.xyz"
    database_path: str = "subscriptions.db"
    min_trade_value_usd: float = 50_000.0
    default_symbol: str = "BTC"
    retry_max_attempts: int = 5
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 30000
    symbol_refresh_hours: float = 6.0
    trade_feed_source: str = HYPERLIQUID
    http_host: str = "0.0.0.0"
    http_port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Read settings from ``environ`` (default: os.environ).

        Raises ConfigError for unparseable numbers, an unknown feed source,
        or a missing bot token outside simulator mode.
        """
        env = os.environ if environ is None else environ

        def get(key: str, default, cast=str):
            raw = env.get(key, "").strip()
            if not raw:
                return default
            try:
                return cast(raw)
            except ValueError:
                raise ConfigError(f"{key}={raw!r} is not a valid {cast.__name__}") from None

        source = get("TRADE_FEED_SOURCE", HYPERLIQUID).lower()
        if source not in (HYPERLIQUID, SIMULATOR):
            raise ConfigError(f"TRADE_FEED_SOURCE must be '{HYPERLIQUID}' or '{SIMULATOR}', got {source!r}")

        settings = cls(
            telegram_bot_token=get("TELEGRAM_BOT_TOKEN", ""),
            ws_url=get("HYPERLIQUID_WS_URL", cls.ws_url),
            api_url=get("HYPERLIQUID_API_URL", cls.api_url).rstrip("/"),
            database_path=get("DATABASE_PATH", cls.database_path),
            min_trade_value_usd=get("MIN_TRADE_VALUE_USD", cls.min_trade_value_usd, float),
            default_symbol=get("DEFAULT_SYMBOL", cls.default_symbol).upper(),
            retry_max_attempts=get("RETRY_MAX_ATTEMPTS", cls.retry_max_attempts, int),
            retry_base_delay_ms=get("RETRY_BASE_DELAY_MS", cls.retry_base_delay_ms, int),
            retry_max_delay_ms=get("RETRY_MAX_DELAY_MS", cls.retry_max_delay_ms, int),
            symbol_refresh_hours=get("SYMBOL_REFRESH_HOURS", cls.symbol_refresh_hours, float),
            trade_feed_source=source,
            http_host=get("HTTP_HOST", cls.http_host),
            http_port=get("HTTP_PORT", cls.http_port, int),
            log_level=get("LOG_LEVEL", cls.log_level).upper(),
        )
        if not settings.telegram_bot_token and source != SIMULATOR:
            raise ConfigError("TELEGRAM_BOT_TOKEN is required unless TRADE_FEED_SOURCE=simulator")
        return settings

    @property
    def backoff(self) -> BackoffPolicy:
        return BackoffPolicy.from_millis(
            self.retry_base_delay_ms,
            self.retry_max_delay_ms,
            self.retry_max_attempts,
        )

    @property
    def simulated(self) -> bool:
        return self.trade_feed_source == SIMULATOR
