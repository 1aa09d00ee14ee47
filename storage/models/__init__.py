"""
Storage Models Package.

============================================================
MODEL ORGANIZATION
============================================================

Margin diary (diary.py)
- Portfolio
- Trade
- FinancingEvent
- TradeClosure

Spot accounting (spot.py)
- SpotTransaction

============================================================
"""

from storage.models.base import Base, TimestampMixin
from storage.models.diary import (
    FinancingEvent,
    FinancingEventType,
    Portfolio,
    PortfolioType,
    RateType,
    Trade,
    TradeClosure,
)
from storage.models.spot import (
    CASH_TICKER,
    SpotTransaction,
    SpotTransactionType,
    signed_amount,
)


__all__ = [
    "Base",
    "TimestampMixin",
    "Portfolio",
    "PortfolioType",
    "RateType",
    "Trade",
    "FinancingEvent",
    "FinancingEventType",
    "TradeClosure",
    "SpotTransaction",
    "SpotTransactionType",
    "CASH_TICKER",
    "signed_amount",
]
