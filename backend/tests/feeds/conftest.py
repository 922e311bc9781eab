"""Fixtures for trade feed tests.

Fake transport, store and notifier so connections and the coordinator can be
driven without network or database access.
"""

import asyncio
import json

import pytest

from app.feeds.interface import StreamSession, StreamTransport
from app.feeds.models import Subscriber


def trades_message(*records: dict) -> str:
    return json.dumps({"channel": "trades", "data": list(records)})


class FakeSession(StreamSession):
    """Replays scripted frames. None means server close, exceptions are raised."""

    def __init__(self, frames: list) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._frames: asyncio.Queue = asyncio.Queue()
        for frame in frames:
            self._frames.put_nowait(frame)

    def push(self, frame) -> None:
        self._frames.put_nowait(frame)

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def recv(self):
        frame = await self._frames.get()
        if isinstance(frame, Exception):
            raise frame
        return frame

    async def close(self) -> None:
        self.closed = True


class FakeTransport(StreamTransport):
    """Hands out FakeSessions; can be told to fail the next N connects."""

    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []
        self.connect_times: list[float] = []
        self._scripts: list[list] = []
        self._failures: list[Exception] = []

    def script(self, *frames) -> None:
        """Frames for the next session that connects successfully."""
        self._scripts.append(list(frames))

    def fail_next(self, count: int, error: Exception | None = None) -> None:
        self._failures.extend([error or OSError("connection refused")] * count)

    async def connect(self) -> FakeSession:
        self.connect_times.append(asyncio.get_running_loop().time())
        if self._failures:
            raise self._failures.pop(0)
        session = FakeSession(self._scripts.pop(0) if self._scripts else [])
        self.sessions.append(session)
        return session


class FakeStore:
    def __init__(self) -> None:
        self.subscribers: dict[str, list[Subscriber]] = {}
        self.fail = False
        self.fail_seeding = False
        self.lookups: list[str] = []

    def add(self, symbol: str, user_id: int, chat_id: int | None = None) -> None:
        self.subscribers.setdefault(symbol, []).append(
            Subscriber(user_id=user_id, chat_id=chat_id if chat_id is not None else user_id)
        )

    def remove(self, symbol: str, user_id: int) -> None:
        self.subscribers[symbol] = [s for s in self.subscribers.get(symbol, []) if s.user_id != user_id]

    async def list_subscribed_symbols(self) -> list[str]:
        if self.fail_seeding:
            raise RuntimeError("database unavailable")
        return sorted(symbol for symbol, subs in self.subscribers.items() if subs)

    async def list_subscribers(self, symbol: str) -> list[Subscriber]:
        self.lookups.append(symbol)
        if self.fail:
            raise RuntimeError("database unavailable")
        return list(self.subscribers.get(symbol, []))


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.failing_chats: set[int] = set()

    async def notify(self, chat_id, symbol, side, price, notional) -> bool:
        if chat_id in self.failing_chats:
            raise RuntimeError(f"chat {chat_id} blocked the bot")
        self.calls.append((chat_id, symbol, side, price, notional))
        return True


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_trades_message():
    return trades_message
