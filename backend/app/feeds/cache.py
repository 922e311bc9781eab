"""In-memory record of recent large trades."""

from __future__ import annotations

from threading import Lock

from .models import Trade


class LargeTradeCache:
    """Latest alert-worthy trade for each symbol.

    Writer: TradeCoordinator, once per trade that cleared the threshold.
    Readers: the SSE endpoint and the feed status endpoint.

    Every record() gets the next version number, and the symbol remembers the
    version of its latest trade. Readers keep a cursor and ask for what
    changed since it.
    """

    def __init__(self) -> None:
        self._trades: dict[str, Trade] = {}
        self._versions: dict[str, int] = {}
        self._lock = Lock()
        self._version: int = 0
        self._total: int = 0

    def record(self, trade: Trade) -> int:
        """Store ``trade`` as its symbol's latest. Returns the new version."""
        with self._lock:
            self._version += 1
            self._total += 1
            self._trades[trade.symbol] = trade
            self._versions[trade.symbol] = self._version
            return self._version

    def get(self, symbol: str) -> Trade | None:
        with self._lock:
            return self._trades.get(symbol)

    def get_all(self) -> dict[str, Trade]:
        """Snapshot of the latest trade per symbol. Returns a shallow copy."""
        with self._lock:
            return dict(self._trades)

    def changed_since(self, version: int) -> tuple[int, list[tuple[int, Trade]]]:
        """Latest trades of symbols updated after ``version``, oldest first.

        Returns the current version (the caller's next cursor) and
        ``(version, trade)`` pairs. A symbol that traded several times since
        the cursor appears once, with its newest trade.
        """
        with self._lock:
            changed = sorted(
                ((v, self._trades[symbol]) for symbol, v in self._versions.items() if v > version),
                key=lambda pair: pair[0],
            )
            return self._version, changed

    @property
    def version(self) -> int:
        return self._version

    @property
    def total(self) -> int:
        """Number of trades recorded since startup."""
        return self._total

    def __len__(self) -> int:
        with self._lock:
            return len(self._trades)
