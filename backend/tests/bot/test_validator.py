"""Tests for SymbolValidator (mocked HTTP)."""

from unittest.mock import AsyncMock, patch

import pytest

from app.bot.validator import SymbolLookupError, SymbolValidator, parse_universe

META = [
    {
        "universe": [
            {"name": "BTC", "szDecimals": 5},
            {"name": "eth", "szDecimals": 4},
            {"name": "LUNA", "isDelisted": True},
        ]
    },
    [{"funding": "0.0001"}],
]


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestParseUniverse:
    def test_parses_listed_symbols(self):
        assert parse_universe(META) == {"BTC", "ETH"}

    def test_rejects_non_list(self):
        with pytest.raises(SymbolLookupError):
            parse_universe({"universe": []})

    def test_rejects_missing_universe(self):
        with pytest.raises(SymbolLookupError):
            parse_universe([{"foo": 1}])

    @pytest.mark.parametrize("universe", [None, 42, "BTC", {"name": "BTC"}])
    def test_rejects_malformed_universe(self, universe):
        with pytest.raises(SymbolLookupError, match="universe"):
            parse_universe([{"universe": universe}, []])

    def test_skips_bad_entries(self):
        assert parse_universe([{"universe": [{"name": "SOL"}, "junk", {"nope": 1}]}]) == {"SOL"}


@pytest.mark.asyncio
class TestSymbolValidator:
    """Cache behavior with a mocked metadata fetch."""

    async def test_first_lookup_fetches(self):
        validator = SymbolValidator(clock=FakeClock())
        with patch.object(validator, "_fetch_meta", AsyncMock(return_value=META)) as fetch:
            assert await validator.exists("btc") is True
        fetch.assert_awaited_once()

    async def test_cached_within_refresh_interval(self):
        clock = FakeClock()
        validator = SymbolValidator(refresh_interval=3600, clock=clock)
        with patch.object(validator, "_fetch_meta", AsyncMock(return_value=META)) as fetch:
            await validator.exists("BTC")
            clock.now += 100
            await validator.exists("ETH")
        assert fetch.await_count == 1

    async def test_refreshes_when_stale(self):
        clock = FakeClock()
        validator = SymbolValidator(refresh_interval=3600, clock=clock)
        with patch.object(validator, "_fetch_meta", AsyncMock(return_value=META)) as fetch:
            await validator.exists("BTC")
            clock.now += 3600
            await validator.exists("BTC")
        assert fetch.await_count == 2

    async def test_delisted_is_not_valid(self):
        validator = SymbolValidator(clock=FakeClock())
        with patch.object(validator, "_fetch_meta", AsyncMock(return_value=META)):
            assert await validator.exists("LUNA") is False

    async def test_unknown_symbol_refreshes_after_cooldown(self):
        clock = FakeClock()
        validator = SymbolValidator(miss_cooldown=60, clock=clock)
        listed = [{"universe": [{"name": "BTC"}, {"name": "NEW"}]}]
        fetch = AsyncMock(side_effect=[META, listed])
        with patch.object(validator, "_fetch_meta", fetch):
            assert await validator.exists("NEW") is False
            assert await validator.exists("NEW") is False  # Within cooldown: no refetch
            clock.now += 60
            assert await validator.exists("NEW") is True
        assert fetch.await_count == 2

    async def test_fetch_failure_raises(self):
        validator = SymbolValidator(clock=FakeClock())
        fetch = AsyncMock(side_effect=SymbolLookupError("HTTP 500"))
        with patch.object(validator, "_fetch_meta", fetch):
            with pytest.raises(SymbolLookupError):
                await validator.exists("BTC")

    async def test_malformed_response_raises_lookup_error(self):
        validator = SymbolValidator(clock=FakeClock())
        fetch = AsyncMock(return_value=[{"universe": None}, []])
        with patch.object(validator, "_fetch_meta", fetch):
            with pytest.raises(SymbolLookupError):
                await validator.exists("BTC")
