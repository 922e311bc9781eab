"""Data models for the trade feed."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any


def normalize_symbol(symbol: str) -> str:
    """Canonical form used for every feed and subscription lookup."""
    return symbol.strip().upper()


@dataclass(frozen=True, slots=True)
class Trade:
    """Immutable trade as reported by the exchange.

    Price and size keep the exchange's decimal strings and are only parsed
    when the notional value is needed.
    """

    symbol: str
    side: str
    price: str
    size: str
    received_at: float = field(default_factory=time.time)  # Unix seconds

    @classmethod
    def from_wire(cls, record: Any) -> Trade:
        """Build a Trade from one ``{coin, side, px, sz}`` record.

        Raises ValueError if the record is missing fields or has the wrong shape.
        """
        if not isinstance(record, dict):
            raise ValueError(f"trade record must be an object, got {type(record).__name__}")
        try:
            coin = record["coin"]
            side = record["side"]
            px = record["px"]
            sz = record["sz"]
        except KeyError as e:
            raise ValueError(f"trade record missing field {e}") from None
        if not all(isinstance(v, str) for v in (coin, side, px, sz)):
            raise ValueError("trade record fields must be strings")
        return cls(symbol=normalize_symbol(coin), side=side, price=px, size=sz)

    @property
    def price_value(self) -> float:
        return float(self.price)

    @property
    def size_value(self) -> float:
        return float(self.size)

    @property
    def notional(self) -> float:
        """price x size in quote currency (USD). Raises ValueError if unparseable."""
        return self.price_value * self.size_value

    @property
    def is_buy(self) -> bool:
        return self.side == "B"

    @property
    def side_label(self) -> str:
        """'BUY' or 'SELL'."""
        return "BUY" if self.is_buy else "SELL"

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "symbol": self.symbol,
            "side": self.side_label,
            "price": self.price,
            "size": self.size,
            "notional": round(self.notional, 2),
            "received_at": self.received_at,
        }


@dataclass(frozen=True, slots=True)
class SubscriptionChange:
    """Signals that a feed should exist for ``symbol``."""

    symbol: str


@dataclass(frozen=True, slots=True)
class Subscriber:
    """A chat user subscribed to a symbol."""

    user_id: int
    chat_id: int
