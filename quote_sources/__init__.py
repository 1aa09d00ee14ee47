"""
Quote Sources Package.

Live last prices for marking open positions to market.

Components:
- base: BaseQuoteSource with the shared aiohttp request path
- providers: MOEX ISS and Alpha Vantage adapters
- cache: QuoteCache with TTL, aliasing and provider fallback
- config: QuoteConfig and instrument tables
"""

from quote_sources.cache import QuoteCache
from quote_sources.config import QuoteConfig
from quote_sources.exceptions import (
    ConfigurationError,
    FetchError,
    NormalizationError,
    QuoteSourceError,
    RateLimitError,
)
from quote_sources.models import CachedQuote, Quote


__all__ = [
    "QuoteCache",
    "QuoteConfig",
    "Quote",
    "CachedQuote",
    "QuoteSourceError",
    "FetchError",
    "RateLimitError",
    "NormalizationError",
    "ConfigurationError",
]
