"""
Base Quote Source - Abstract interface for price providers.

Providers fetch one last price per call and raise a
QuoteSourceError on any failure. Fallback between providers
and caching live in QuoteCache.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Optional

import aiohttp

from core.money import to_decimal
from quote_sources.exceptions import FetchError, NormalizationError, RateLimitError
from quote_sources.models import Quote


logger = logging.getLogger(__name__)


class BaseQuoteSource(ABC):
    """
    Abstract base class for all quote providers.

    Each provider must implement:
    1. name - short source tag stored with cached prices
    2. fetch_quote() - last price of a resolved symbol

    The aiohttp session is either injected (shared by several
    providers) or created lazily and owned by the provider.
    """

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    @abstractmethod
    def name(self) -> str:
        """Source tag, e.g. "moex"."""
        pass

    @abstractmethod
    async def fetch_quote(self, symbol: str, domestic: bool) -> Quote:
        """
        Fetch the last price of `symbol`.

        Args:
            symbol: Resolved (aliased, upper-cased) symbol
            domestic: Whether the symbol trades on the domestic exchange

        Raises:
            QuoteSourceError: If no price could be obtained
        """
        pass

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this provider created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _make_request(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """GET `url` and decode the JSON body."""
        session = await self._get_session()

        start_time = time.time()
        try:
            async with session.get(
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as response:
                latency_ms = (time.time() - start_time) * 1000

                if response.status == 429:
                    raise RateLimitError(
                        message="Rate limit exceeded",
                        source_name=self.name,
                    )

                if response.status >= 400:
                    raise FetchError(
                        message=f"HTTP {response.status}",
                        source_name=self.name,
                        status_code=response.status,
                        request_url=url,
                    )

                data = await response.json(content_type=None)
                logger.debug(f"[{self.name}] Request completed in {latency_ms:.1f}ms")
                return data

        except aiohttp.ClientError as e:
            raise FetchError(
                message=f"Connection error: {e}",
                source_name=self.name,
                request_url=url,
                original_error=e,
            ) from e
        except asyncio.TimeoutError as e:
            raise FetchError(
                message=f"Timed out after {self._timeout}s",
                source_name=self.name,
                request_url=url,
                original_error=e,
            ) from e
        except ValueError as e:
            raise NormalizationError(
                message=f"Invalid JSON: {e}",
                source_name=self.name,
            ) from e

    def _parse_price(self, value: Any, raw_data: Any = None) -> Decimal:
        """Positive Decimal price or NormalizationError."""
        if isinstance(value, bool):
            value = None
        try:
            price = to_decimal(value)
        except ValueError:
            price = None
        if price is None or price <= 0:
            raise NormalizationError(
                message=f"No usable price in payload: {value!r}",
                source_name=self.name,
                raw_data=raw_data,
            )
        return price
