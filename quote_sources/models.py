"""
Quote Models.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Quote:
    """
    Last price of an instrument.

    `ticker` is the ticker the caller asked for, even when the
    price was fetched under an aliased symbol.
    """

    ticker: str
    price: Decimal
    source: str
    currency: str


@dataclass(frozen=True)
class CachedQuote:
    """Cache entry keyed by the resolved symbol."""

    price: Decimal
    fetched_at: float
    """Unix timestamp from the cache's clock."""

    source: str
    currency: str

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return now - self.fetched_at < ttl_seconds

    def as_quote(self, ticker: str) -> Quote:
        return Quote(ticker=ticker, price=self.price, source=self.source, currency=self.currency)
