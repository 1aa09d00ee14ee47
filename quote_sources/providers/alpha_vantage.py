"""
Alpha Vantage Quote Source - GLOBAL_QUOTE adapter.

Free API keys are heavily rate limited, so several keys can be
configured. A quota response ("Note"/"Information" payload or
HTTP 429) moves on to the next key; any other failure of a key
does the same. Domestic symbols are addressed with the `.ME`
suffix.
"""

import logging
from typing import Any, List, Optional, Sequence

import aiohttp

from quote_sources.base import BaseQuoteSource
from quote_sources.exceptions import (
    ConfigurationError,
    NormalizationError,
    QuoteSourceError,
    RateLimitError,
)
from quote_sources.models import Quote


logger = logging.getLogger(__name__)


class AlphaVantageQuoteSource(BaseQuoteSource):
    """Alpha Vantage last price with API key rotation."""

    BASE_URL = "https://www.alphavantage.co/query"
    DOMESTIC_SUFFIX = ".ME"
    RATE_LIMIT_KEYS = ("Note", "Information")

    def __init__(
        self,
        api_keys: Sequence[str],
        timeout: float = BaseQuoteSource.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(timeout, session)
        self._api_keys: List[str] = [k.strip() for k in api_keys if k and k.strip()]

    @property
    def name(self) -> str:
        return "alpha"

    @property
    def key_count(self) -> int:
        return len(self._api_keys)

    def _symbol(self, symbol: str, domestic: bool) -> str:
        return f"{symbol}{self.DOMESTIC_SUFFIX}" if domestic else symbol

    def _extract_price(self, data: Any) -> Any:
        if not isinstance(data, dict):
            raise NormalizationError("Payload is not an object", self.name, raw_data=data)
        for marker in self.RATE_LIMIT_KEYS:
            if marker in data:
                raise RateLimitError(f"{marker}: {data[marker]}", self.name)
        quote = data.get("Global Quote")
        if not isinstance(quote, dict) or quote.get("05. price") is None:
            raise NormalizationError("Missing Global Quote price", self.name, raw_data=data)
        return quote["05. price"]

    async def fetch_quote(self, symbol: str, domestic: bool = False) -> Quote:
        if not self._api_keys:
            raise ConfigurationError("No Alpha Vantage API key configured", self.name)

        av_symbol = self._symbol(symbol, domestic)
        currency = "RUB" if domestic else "USD"
        last_error: Optional[QuoteSourceError] = None

        for index, key in enumerate(self._api_keys, start=1):
            params = {"function": "GLOBAL_QUOTE", "symbol": av_symbol, "apikey": key}
            try:
                data = await self._make_request(self.BASE_URL, params)
                price = self._parse_price(self._extract_price(data), data)
                return Quote(ticker=symbol, price=price, source=self.name, currency=currency)
            except RateLimitError as e:
                logger.warning(f"[{self.name}] Key {index}/{len(self._api_keys)} rate limited, trying next")
                last_error = e
            except QuoteSourceError as e:
                logger.debug(f"[{self.name}] Key {index}/{len(self._api_keys)} failed for {av_symbol}: {e}")
                last_error = e

        raise QuoteSourceError(
            message=f"No Alpha Vantage price for {av_symbol}",
            source_name=self.name,
            original_error=last_error,
        )
