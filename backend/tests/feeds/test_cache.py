"""Tests for LargeTradeCache."""

from app.feeds.cache import LargeTradeCache
from app.feeds.models import Trade


def make_trade(symbol="BTC", price="60000") -> Trade:
    return Trade(symbol=symbol, side="B", price=price, size="1")


class TestLargeTradeCache:
    """Unit tests for the large-trade cache."""

    def test_record_and_get(self):
        cache = LargeTradeCache()
        trade = make_trade()
        cache.record(trade)
        assert cache.get("BTC") is trade

    def test_keeps_latest_per_symbol(self):
        cache = LargeTradeCache()
        cache.record(make_trade(price="60000"))
        cache.record(make_trade(price="61000"))
        assert cache.get("BTC").price == "61000"
        assert len(cache) == 1
        assert cache.total == 2

    def test_get_unknown(self):
        assert LargeTradeCache().get("NOPE") is None

    def test_get_all_is_a_copy(self):
        cache = LargeTradeCache()
        cache.record(make_trade("BTC"))
        cache.record(make_trade("ETH"))
        snapshot = cache.get_all()
        snapshot.clear()
        assert set(cache.get_all()) == {"BTC", "ETH"}

    def test_version_increments(self):
        cache = LargeTradeCache()
        v0 = cache.version
        cache.record(make_trade())
        assert cache.version == v0 + 1

    def test_changed_since_returns_newest_per_symbol(self):
        cache = LargeTradeCache()
        cache.record(make_trade("BTC", "60000"))
        cursor = cache.version
        cache.record(make_trade("ETH", "3000"))
        cache.record(make_trade("BTC", "61000"))
        cache.record(make_trade("ETH", "3100"))

        version, changed = cache.changed_since(cursor)

        assert version == 4
        assert [(v, t.symbol, t.price) for v, t in changed] == [(3, "BTC", "61000"), (4, "ETH", "3100")]

    def test_changed_since_current_version_is_empty(self):
        cache = LargeTradeCache()
        cache.record(make_trade())
        version, changed = cache.changed_since(cache.version)
        assert (version, changed) == (1, [])

    def test_record_returns_version(self):
        cache = LargeTradeCache()
        assert cache.record(make_trade("BTC")) == 1
        assert cache.record(make_trade("ETH")) == 2
