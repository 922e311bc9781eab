"""SQLite-backed subscription store."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from threading import Lock

from ..feeds.models import Subscriber, normalize_symbol

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS user_subscriptions (
    telegram_user_id INTEGER NOT NULL,
    telegram_chat_id INTEGER NOT NULL,
    coin TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (telegram_user_id, coin)
);
CREATE INDEX IF NOT EXISTS idx_user_subscriptions_coin ON user_subscriptions (coin);
"""


class SubscriptionStore:
    """Durable mapping of Telegram users to the symbols they follow.

    sqlite3 is blocking, so every query runs in a worker thread via
    asyncio.to_thread. Each call opens its own connection; writes are
    serialized with a lock. All symbols are stored in canonical form.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._write_lock = Lock()
        self._initialized = False

    async def initialize(self) -> None:
        """Create the schema if needed. Safe to call more than once."""
        await asyncio.to_thread(self._init_schema)

    async def add_subscription(self, user_id: int, chat_id: int, symbol: str) -> bool:
        """Subscribe a user. Returns False if the subscription already existed."""
        return await asyncio.to_thread(self._add, user_id, chat_id, normalize_symbol(symbol))

    async def remove_subscription(self, user_id: int, symbol: str) -> bool:
        """Unsubscribe a user. Returns False if there was nothing to remove."""
        return await asyncio.to_thread(self._remove, user_id, normalize_symbol(symbol))

    async def list_user_symbols(self, user_id: int) -> list[str]:
        rows = await asyncio.to_thread(
            self._query,
            "SELECT coin FROM user_subscriptions WHERE telegram_user_id = ? ORDER BY coin",
            (user_id,),
        )
        return [row[0] for row in rows]

    async def list_subscribers(self, symbol: str) -> list[Subscriber]:
        rows = await asyncio.to_thread(
            self._query,
            "SELECT telegram_user_id, telegram_chat_id FROM user_subscriptions WHERE coin = ?",
            (normalize_symbol(symbol),),
        )
        return [Subscriber(user_id=row[0], chat_id=row[1]) for row in rows]

    async def list_subscribed_symbols(self) -> list[str]:
        """Every symbol with at least one subscriber."""
        rows = await asyncio.to_thread(
            self._query,
            "SELECT DISTINCT coin FROM user_subscriptions ORDER BY coin",
            (),
        )
        return [row[0] for row in rows]

    # --- Internal (run in worker threads) ---

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._path, timeout=10.0)

    def _init_schema(self) -> None:
        with self._write_lock:
            conn = self._connect()
            try:
                conn.executescript(_SCHEMA)
                conn.commit()
            finally:
                conn.close()
            self._initialized = True
        logger.info("Subscription store ready: %s", self._path)

    def _ensure_schema(self) -> None:
        if not self._initialized:
            self._init_schema()

    def _add(self, user_id: int, chat_id: int, symbol: str) -> bool:
        self._ensure_schema()
        with self._write_lock:
            conn = self._connect()
            try:
                cur = conn.execute(
                    "INSERT OR IGNORE INTO user_subscriptions "
                    "(telegram_user_id, telegram_chat_id, coin) VALUES (?, ?, ?)",
                    (user_id, chat_id, symbol),
                )
                conn.commit()
                return cur.rowcount > 0
            finally:
                conn.close()

    def _remove(self, user_id: int, symbol: str) -> bool:
        self._ensure_schema()
        with self._write_lock:
            conn = self._connect()
            try:
                cur = conn.execute(
                    "DELETE FROM user_subscriptions WHERE telegram_user_id = ? AND coin = ?",
                    (user_id, symbol),
                )
                conn.commit()
                return cur.rowcount > 0
            finally:
                conn.close()

    def _query(self, sql: str, params: tuple) -> list[tuple]:
        self._ensure_schema()
        conn = self._connect()
        try:
            return conn.execute(sql, params).fetchall()
        finally:
            conn.close()
