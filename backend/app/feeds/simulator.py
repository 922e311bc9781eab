"""Simulated exchange trade stream for running without network access."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import random

import numpy as np

from .interface import StreamSession, StreamTransport
from .models import normalize_symbol
from .seed_prices import (
    DEFAULT_PARAMS,
    NOTIONAL_LOG_SIGMA,
    NOTIONAL_MEDIAN_USD,
    SEED_PRICES,
    SYMBOL_PARAMS,
    TRADING_SECONDS_PER_YEAR,
)

logger = logging.getLogger(__name__)


class TradeSimulator:
    """Generates trades for one symbol.

    Price follows Geometric Brownian Motion:
        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Each step emits a small batch of trades at the new price whose notional
    values are lognormal around NOTIONAL_MEDIAN_USD, so most trades are small
    and an occasional one is large enough to alert on.
    """

    def __init__(
        self,
        symbol: str,
        dt: float = 0.5 / TRADING_SECONDS_PER_YEAR,
        max_batch: int = 3,
        seed: int | None = None,
    ) -> None:
        self.symbol = normalize_symbol(symbol)
        self._dt = dt
        self._max_batch = max_batch
        self._rng = np.random.default_rng(seed)
        self._price = SEED_PRICES.get(self.symbol, random.uniform(1.0, 100.0))
        self._params = SYMBOL_PARAMS.get(self.symbol, dict(DEFAULT_PARAMS))

    @property
    def price(self) -> float:
        return self._price

    def step(self) -> list[dict[str, str]]:
        """Advance the price one step and return wire-format trade records."""
        mu = self._params["mu"]
        sigma = self._params["sigma"]
        drift = (mu - 0.5 * sigma**2) * self._dt
        diffusion = sigma * math.sqrt(self._dt) * self._rng.standard_normal()
        self._price *= math.exp(drift + diffusion)

        count = int(self._rng.integers(1, self._max_batch + 1))
        notionals = self._rng.lognormal(math.log(NOTIONAL_MEDIAN_USD), NOTIONAL_LOG_SIGMA, count)
        sides = self._rng.choice(["B", "A"], size=count)

        px = _format_decimal(self._price)
        return [
            {
                "coin": self.symbol,
                "side": str(side),
                "px": px,
                "sz": _format_decimal(notional / self._price),
            }
            for side, notional in zip(sides, notionals)
        ]


class SimulatedSession(StreamSession):
    """Session that answers a trades subscription with simulated trades."""

    def __init__(self, interval: float, seed: int | None = None) -> None:
        self._interval = interval
        self._seed = seed
        self._sim: TradeSimulator | None = None
        self._ack: str | None = None
        self._subscribed = asyncio.Event()
        self._closed = asyncio.Event()

    async def send(self, message: str) -> None:
        payload = json.loads(message)
        if payload.get("method") != "subscribe":
            return
        subscription = payload.get("subscription", {})
        if subscription.get("type") != "trades":
            return
        self._sim = TradeSimulator(subscription["coin"], seed=self._seed)
        # Hyperliquid acknowledges subscriptions before any data arrives
        self._ack = json.dumps(
            {"channel": "subscriptionResponse", "data": payload},
        )
        self._subscribed.set()
        logger.debug("Simulator: subscribed to %s", self._sim.symbol)

    async def recv(self) -> str | None:
        if self._closed.is_set():
            return None
        await self._subscribed.wait()
        if self._ack is not None:
            ack, self._ack = self._ack, None
            return ack
        await asyncio.sleep(self._interval)
        if self._closed.is_set() or self._sim is None:
            return None
        return json.dumps({"channel": "trades", "data": self._sim.step()})

    async def close(self) -> None:
        self._closed.set()
        self._subscribed.set()


class SimulatedTransport(StreamTransport):
    """StreamTransport producing simulated sessions."""

    def __init__(self, interval: float = 0.5, seed: int | None = None) -> None:
        self._interval = interval
        self._seed = seed

    async def connect(self) -> SimulatedSession:
        return SimulatedSession(interval=self._interval, seed=self._seed)


def _format_decimal(value: float) -> str:
    """Exchange-style decimal string without exponent notation."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text or "0"
