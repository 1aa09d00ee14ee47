"""
Margin Engine Package.

Trade accounting core of the diary.

Components:
- normalizer: borrowed/collateral/leverage resolution at open
- interest: piecewise accrual across rate changes
- lots: derived facts of a lot (open quantity, liquidation price, profit)
- fifo: oldest-lot-first closure
- financing: financing event side effects
- importer: bulk import row schema
- service: TradeService, the transactional entry point
- store: TradeStore persistence interface
"""

from margin_engine.fifo import FifoClosureEngine
from margin_engine.normalizer import normalize_draft
from margin_engine.service import TradeService
from margin_engine.store import TradeStore
from margin_engine.types import (
    ClosureResult,
    FinancingEventResult,
    ImportResult,
    ImportRowError,
    NormalizedPosition,
    TradeDraft,
)


__all__ = [
    "FifoClosureEngine",
    "normalize_draft",
    "TradeService",
    "TradeStore",
    "TradeDraft",
    "NormalizedPosition",
    "ClosureResult",
    "FinancingEventResult",
    "ImportResult",
    "ImportRowError",
]
