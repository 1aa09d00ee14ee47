"""
Providers package - Quote source implementations.
"""

from quote_sources.providers.alpha_vantage import AlphaVantageQuoteSource
from quote_sources.providers.moex import MoexQuoteSource


__all__ = [
    "AlphaVantageQuoteSource",
    "MoexQuoteSource",
]
