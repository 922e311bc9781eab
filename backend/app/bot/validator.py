"""Cached lookup of symbols tradable on Hyperliquid."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import aiohttp

from ..feeds.models import normalize_symbol

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.hyperliquid.xyz"


class SymbolLookupError(Exception):
    """The tradable-symbol list could not be fetched or understood."""


def parse_universe(payload: Any) -> set[str]:
    """Extract listed symbols from a ``metaAndAssetCtxs`` response.

    The response is a list; the element carrying ``universe`` holds the
    asset metadata. Delisted assets are excluded.
    """
    if not isinstance(payload, list):
        raise SymbolLookupError("metaAndAssetCtxs response is not a list")
    meta = next((obj for obj in payload if isinstance(obj, dict) and "universe" in obj), None)
    if meta is None:
        raise SymbolLookupError("metaAndAssetCtxs response has no universe")
    universe = meta["universe"]
    if not isinstance(universe, list):
        raise SymbolLookupError(f"metaAndAssetCtxs universe is {type(universe).__name__}, not a list")
    symbols = set()
    for asset in universe:
        try:
            if asset.get("isDelisted"):
                continue
            symbols.add(normalize_symbol(asset["name"]))
        except (AttributeError, KeyError, TypeError) as e:
            logger.warning("Skipping asset entry %r: %s", asset, e)
    return symbols


class SymbolValidator:
    """Answers "is this symbol tradable?" from a periodically refreshed cache.

    The cache is refreshed when it is older than ``refresh_interval``. An
    unknown symbol also triggers a refresh (a new listing may have appeared),
    but at most once per ``miss_cooldown`` seconds.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        refresh_interval: float = 6 * 60 * 60,
        miss_cooldown: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._refresh_interval = refresh_interval
        self._miss_cooldown = miss_cooldown
        self._clock = clock
        self._symbols: set[str] | None = None
        self._last_fetched: float | None = None
        self._lock = asyncio.Lock()

    async def exists(self, symbol: str) -> bool:
        """True if ``symbol`` is listed. Raises SymbolLookupError if the list can't be fetched."""
        symbol = normalize_symbol(symbol)
        if self._is_stale(self._refresh_interval):
            await self.refresh()
        elif symbol not in self._symbols and self._is_stale(self._miss_cooldown):
            await self.refresh()

        exists = symbol in self._symbols
        if exists:
            logger.info("%s is valid", symbol)
        else:
            logger.warning("%s is not available on Hyperliquid", symbol)
        return exists

    async def refresh(self) -> set[str]:
        async with self._lock:
            logger.info("Fetching symbols from Hyperliquid")
            payload = await self._fetch_meta()
            symbols = parse_universe(payload)
            self._symbols = symbols
            self._last_fetched = self._clock()
            logger.info("Fetched %d valid symbols from Hyperliquid", len(symbols))
            return set(symbols)

    # --- Internal ---

    def _is_stale(self, max_age: float) -> bool:
        if self._symbols is None or self._last_fetched is None:
            return True
        return self._clock() - self._last_fetched >= max_age

    async def _fetch_meta(self) -> Any:
        timeout = aiohttp.ClientTimeout(total=10)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    f"{self._api_url}/info",
                    json={"type": "metaAndAssetCtxs"},
                ) as resp:
                    if resp.status != 200:
                        raise SymbolLookupError(f"Hyperliquid info request failed: HTTP {resp.status}")
                    return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise SymbolLookupError(f"Hyperliquid info request failed: {e}") from e
