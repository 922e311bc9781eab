"""Tests for SubscriptionStore (SQLite)."""

import asyncio

import pytest
import pytest_asyncio

from app.bot.store import SubscriptionStore
from app.feeds.models import Subscriber


@pytest_asyncio.fixture
async def sub_store(db_path):
    store = SubscriptionStore(db_path)
    await store.initialize()
    return store


@pytest.mark.asyncio
class TestSubscriptionStore:
    """Unit tests against a temporary database file."""

    async def test_add_returns_created(self, sub_store):
        assert await sub_store.add_subscription(1, 100, "BTC") is True
        assert await sub_store.add_subscription(1, 100, "BTC") is False

    async def test_symbols_are_normalized(self, sub_store):
        await sub_store.add_subscription(1, 100, " eth ")
        assert await sub_store.list_user_symbols(1) == ["ETH"]
        assert await sub_store.add_subscription(1, 100, "ETH") is False

    async def test_remove(self, sub_store):
        await sub_store.add_subscription(1, 100, "BTC")
        assert await sub_store.remove_subscription(1, "btc") is True
        assert await sub_store.remove_subscription(1, "BTC") is False
        assert await sub_store.list_user_symbols(1) == []

    async def test_list_user_symbols_sorted(self, sub_store):
        for symbol in ("SOL", "BTC", "ETH"):
            await sub_store.add_subscription(1, 100, symbol)
        await sub_store.add_subscription(2, 200, "DOGE")
        assert await sub_store.list_user_symbols(1) == ["BTC", "ETH", "SOL"]

    async def test_list_subscribers(self, sub_store):
        await sub_store.add_subscription(1, 100, "BTC")
        await sub_store.add_subscription(2, 200, "BTC")
        await sub_store.add_subscription(3, 300, "ETH")

        subscribers = await sub_store.list_subscribers("btc")

        assert sorted(subscribers, key=lambda s: s.user_id) == [
            Subscriber(user_id=1, chat_id=100),
            Subscriber(user_id=2, chat_id=200),
        ]

    async def test_list_subscribers_empty(self, sub_store):
        assert await sub_store.list_subscribers("BTC") == []

    async def test_list_subscribed_symbols_distinct(self, sub_store):
        await sub_store.add_subscription(1, 100, "BTC")
        await sub_store.add_subscription(2, 200, "BTC")
        await sub_store.add_subscription(2, 200, "ETH")
        assert await sub_store.list_subscribed_symbols() == ["BTC", "ETH"]

    async def test_persists_across_instances(self, db_path):
        first = SubscriptionStore(db_path)
        await first.add_subscription(1, 100, "BTC")

        second = SubscriptionStore(db_path)
        assert await second.list_subscribed_symbols() == ["BTC"]

    async def test_concurrent_adds(self, sub_store):
        results = await asyncio.gather(*(sub_store.add_subscription(1, 100, "BTC") for _ in range(10)))
        assert results.count(True) == 1
