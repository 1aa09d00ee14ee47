"""
Tests for the quote cache.

============================================================
COVERAGE
============================================================
- TTL hits perform no upstream fetch
- Alias resolution and requested-ticker echo
- Domestic fallback MOEX -> Alpha Vantage
- Failure keeps stale entries and yields None
- Batch lookup
- Concurrent lookups for the same and different tickers
============================================================
"""

import asyncio
from decimal import Decimal

import pytest

from core.clock import MockClock
from quote_sources.base import BaseQuoteSource
from quote_sources.cache import QuoteCache
from quote_sources.config import QuoteConfig
from quote_sources.exceptions import FetchError
from quote_sources.models import Quote


class StubSource(BaseQuoteSource):
    """Provider answering from a symbol -> price table."""

    def __init__(self, name, prices=None):
        super().__init__()
        self._name = name
        self.prices = dict(prices or {})
        self.calls = []

    @property
    def name(self):
        return self._name

    async def fetch_quote(self, symbol, domestic):
        self.calls.append((symbol, domestic))
        if symbol not in self.prices:
            raise FetchError("HTTP 503", self._name, status_code=503)
        currency = "RUB" if domestic else "USD"
        return Quote(symbol, Decimal(self.prices[symbol]), self._name, currency)


@pytest.fixture
def clock():
    return MockClock()


@pytest.fixture
def moex():
    return StubSource("moex", {"SBER": "305.50", "GAZP": "160.10", "T": "2900"})


@pytest.fixture
def alpha():
    return StubSource("alpha", {"AAPL": "187.12", "LKOH": "7100"})


@pytest.fixture
def cache(moex, alpha, clock):
    return QuoteCache(QuoteConfig(ttl_seconds=600), moex, alpha, clock)


# =============================================================
# TTL
# =============================================================

class TestTtl:
    """Cached prices are served until they age out."""

    @pytest.mark.asyncio
    async def test_second_call_within_ttl_is_cached(self, cache, moex):
        first = await cache.get_price("SBER")
        second = await cache.get_price("SBER")

        assert first.price == second.price == Decimal("305.50")
        assert len(moex.calls) == 1

    @pytest.mark.asyncio
    async def test_expired_entry_refetched(self, cache, moex, clock):
        await cache.get_price("SBER")
        clock.advance(seconds=600)
        moex.prices["SBER"] = "310.00"

        quote = await cache.get_price("SBER")

        assert quote.price == Decimal("310.00")
        assert len(moex.calls) == 2

    @pytest.mark.asyncio
    async def test_zero_ttl_always_refetches(self, cache, moex):
        await cache.get_price("SBER", ttl_seconds=0)
        await cache.get_price("SBER", ttl_seconds=0)

        assert len(moex.calls) == 2

    @pytest.mark.asyncio
    async def test_invalidate(self, cache, moex):
        await cache.get_price("SBER")
        cache.invalidate("sber")
        await cache.get_price("SBER")

        assert len(moex.calls) == 2


# =============================================================
# ROUTING
# =============================================================

class TestRouting:
    """Provider choice per symbol."""

    @pytest.mark.asyncio
    async def test_alias_resolved_and_requested_ticker_echoed(self, cache, moex):
        quote = await cache.get_price("tcsg")

        assert moex.calls == [("T", True)]
        assert quote.ticker == "TCSG"
        assert quote.price == Decimal("2900")

    @pytest.mark.asyncio
    async def test_alias_shares_cache_entry(self, cache, moex):
        await cache.get_price("TCSG")
        await cache.get_price("T")

        assert len(moex.calls) == 1

    @pytest.mark.asyncio
    async def test_domestic_falls_back_to_alpha(self, cache, moex, alpha):
        quote = await cache.get_price("LKOH")

        assert moex.calls == [("LKOH", True)]
        assert alpha.calls == [("LKOH", True)]
        assert quote.source == "alpha"
        assert quote.currency == "RUB"

    @pytest.mark.asyncio
    async def test_foreign_symbol_uses_alpha_only(self, cache, moex, alpha):
        quote = await cache.get_price("aapl")

        assert moex.calls == []
        assert alpha.calls == [("AAPL", False)]
        assert quote.ticker == "AAPL"
        assert quote.currency == "USD"


# =============================================================
# FAILURE
# =============================================================

class TestFailure:
    """Upstream failures degrade to no price."""

    @pytest.mark.asyncio
    async def test_unknown_symbol_is_none(self, cache):
        assert await cache.get_price("NOPE") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ticker", [None, "", "   "])
    async def test_blank_ticker_is_none(self, cache, moex, alpha, ticker):
        assert await cache.get_price(ticker) is None
        assert moex.calls == alpha.calls == []

    @pytest.mark.asyncio
    async def test_failure_keeps_stale_entry(self, cache, moex, clock):
        await cache.get_price("SBER")
        clock.advance(seconds=700)
        del moex.prices["SBER"]

        assert await cache.get_price("SBER") is None

        stale = await cache.get_price("SBER", ttl_seconds=10_000)
        assert stale.price == Decimal("305.50")

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, cache, moex):
        assert await cache.get_price("ROSN") is None
        moex.prices["ROSN"] = "560"

        quote = await cache.get_price("ROSN")

        assert quote.price == Decimal("560")


# =============================================================
# BATCH
# =============================================================

class TestGetPrices:
    """Batch lookup."""

    @pytest.mark.asyncio
    async def test_unique_and_resolved_only(self, cache, moex):
        quotes = await cache.get_prices(["SBER", "sber", None, "GAZP", "NOPE"])

        assert [q.ticker for q in quotes] == ["SBER", "GAZP"]
        assert sorted(moex.calls) == [("GAZP", True), ("SBER", True)]

    @pytest.mark.asyncio
    async def test_empty_input(self, cache):
        assert await cache.get_prices([]) == []


# =============================================================
# CONCURRENCY
# =============================================================

class YieldingSource(StubSource):
    """Provider that suspends mid-fetch so calls interleave."""

    async def fetch_quote(self, symbol, domestic):
        await asyncio.sleep(0)
        return await super().fetch_quote(symbol, domestic)


class TestConcurrency:
    """Overlapping lookups share one entry map."""

    @pytest.mark.asyncio
    async def test_concurrent_get_price(self, alpha, clock):
        moex = YieldingSource("moex", {"SBER": "305.50", "GAZP": "160.10", "T": "2900"})
        cache = QuoteCache(QuoteConfig(ttl_seconds=600), moex, alpha, clock)
        tickers = ["SBER", "GAZP", "TCSG", "T", "sber"] * 10

        quotes = await asyncio.gather(*(cache.get_price(t) for t in tickers))

        assert [q.ticker for q in quotes] == [t.upper() for t in tickers]
        assert {q.ticker: q.price for q in quotes} == {
            "SBER": Decimal("305.50"),
            "GAZP": Decimal("160.10"),
            "TCSG": Decimal("2900"),
            "T": Decimal("2900"),
        }
        assert sorted(cache._entries) == ["GAZP", "SBER", "T"]
        for symbol, price in [("SBER", "305.50"), ("GAZP", "160.10"), ("T", "2900")]:
            entry = cache._cached(symbol)
            assert entry.price == Decimal(price)
            assert entry.source == "moex"
            assert entry.currency == "RUB"

        calls_before = len(moex.calls)
        await asyncio.gather(*(cache.get_price(t) for t in tickers))
        assert len(moex.calls) == calls_before
