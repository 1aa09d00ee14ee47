"""
Quote Cache - Last prices with TTL and provider fallback.

============================================================
RESPONSIBILITY
============================================================
Single entry point for live prices. One instance is built per
process and handed to whoever needs quotes.

============================================================
LOOKUP
============================================================
1. Upper-case the ticker and apply the alias table
2. Return the cached entry if younger than the TTL
3. Domestic symbols: MOEX first, then Alpha Vantage (.ME)
   Other symbols: Alpha Vantage
4. Store the fresh price; on total failure return None and
   leave any stale entry as it was

The entry map is guarded by a lock that is never held across
an upstream request.

============================================================
"""

import asyncio
import logging
import threading
from typing import Dict, Iterable, List, Optional, Tuple

import aiohttp

from core.clock import ClockProtocol, SystemClock
from core.exceptions import UpstreamUnavailableError
from quote_sources.base import BaseQuoteSource
from quote_sources.config import QuoteConfig
from quote_sources.exceptions import QuoteSourceError
from quote_sources.models import CachedQuote, Quote
from quote_sources.providers import AlphaVantageQuoteSource, MoexQuoteSource


logger = logging.getLogger(__name__)


class QuoteCache:
    """
    TTL cache over the quote providers.

    Usage:
        cache = QuoteCache.from_config(QuoteConfig.from_env())
        quote = await cache.get_price("SBER")
        await cache.close()
    """

    def __init__(
        self,
        config: QuoteConfig,
        domestic_source: Optional[BaseQuoteSource],
        global_source: Optional[BaseQuoteSource],
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self._config = config
        self._domestic_source = domestic_source
        self._global_source = global_source
        self._clock = clock or SystemClock()
        self._entries: Dict[str, CachedQuote] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: QuoteConfig,
        clock: Optional[ClockProtocol] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> "QuoteCache":
        """Build the cache with the MOEX and Alpha Vantage providers."""
        moex = MoexQuoteSource(
            boards_for=config.boards_for,
            timeout=config.http_timeout_seconds,
            session=session,
        )
        alpha = AlphaVantageQuoteSource(
            config.alpha_vantage_keys,
            timeout=config.http_timeout_seconds,
            session=session,
        )
        if not config.alpha_vantage_keys:
            logger.warning("No Alpha Vantage API keys configured; non-domestic quotes unavailable")
        return cls(config, moex, alpha, clock)

    @property
    def config(self) -> QuoteConfig:
        return self._config

    # =========================================================
    # CACHE MAP
    # =========================================================

    def _cached(self, symbol: str) -> Optional[CachedQuote]:
        with self._lock:
            return self._entries.get(symbol)

    def _store(self, symbol: str, quote: Quote) -> None:
        entry = CachedQuote(
            price=quote.price,
            fetched_at=self._clock.timestamp(),
            source=quote.source,
            currency=quote.currency,
        )
        with self._lock:
            self._entries[symbol] = entry

    def invalidate(self, ticker: Optional[str] = None) -> None:
        """Drop one ticker's entry, or everything."""
        with self._lock:
            if ticker is None:
                self._entries.clear()
            else:
                self._entries.pop(self._config.resolve(ticker), None)

    # =========================================================
    # FETCH
    # =========================================================

    def _sources_for(self, symbol: str) -> List[Tuple[BaseQuoteSource, bool]]:
        domestic = self._config.is_domestic(symbol)
        sources = []
        if domestic and self._domestic_source is not None:
            sources.append((self._domestic_source, True))
        if self._global_source is not None:
            sources.append((self._global_source, domestic))
        return sources

    async def _fetch(self, symbol: str) -> Quote:
        """
        Try each source in order.

        Raises:
            UpstreamUnavailableError: If every source failed
        """
        attempted = []
        for source, domestic in self._sources_for(symbol):
            attempted.append(source.name)
            try:
                return await source.fetch_quote(symbol, domestic)
            except QuoteSourceError as e:
                logger.info(f"[{source.name}] {symbol} unavailable, falling back: {e}")
        raise UpstreamUnavailableError(symbol, attempted)

    async def get_price(self, ticker: Optional[str], ttl_seconds: Optional[float] = None) -> Optional[Quote]:
        """
        Last price of `ticker`, or None when it cannot be obtained.

        Args:
            ticker: Requested ticker (any case, aliases allowed)
            ttl_seconds: Maximum age of a cached price (config default)
        """
        if ticker is None or not ticker.strip():
            return None
        requested = ticker.strip().upper()
        symbol = self._config.resolve(requested)
        ttl = self._config.ttl_seconds if ttl_seconds is None else ttl_seconds

        cached = self._cached(symbol)
        if cached is not None and cached.is_fresh(self._clock.timestamp(), ttl):
            logger.debug(f"Quote cache hit: {symbol}")
            return cached.as_quote(requested)

        try:
            quote = await self._fetch(symbol)
        except UpstreamUnavailableError as e:
            logger.warning(f"No live price for {requested}: tried {e.attempted_sources}")
            return None

        self._store(symbol, quote)
        return Quote(ticker=requested, price=quote.price, source=quote.source, currency=quote.currency)

    async def get_prices(
        self,
        tickers: Iterable[Optional[str]],
        ttl_seconds: Optional[float] = None,
    ) -> List[Quote]:
        """Quotes for every unique ticker that resolved, in first-seen order."""
        unique: List[str] = []
        seen = set()
        for ticker in tickers or ():
            if ticker is None or not ticker.strip():
                continue
            key = ticker.strip().upper()
            if key not in seen:
                seen.add(key)
                unique.append(key)

        results = await asyncio.gather(*(self.get_price(t, ttl_seconds) for t in unique))
        return [quote for quote in results if quote is not None]

    async def close(self) -> None:
        for source in (self._domestic_source, self._global_source):
            if source is not None:
                await source.close()
