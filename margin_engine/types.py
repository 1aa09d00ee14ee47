"""
Margin Engine - Types.

Input drafts and result objects of the engine operations.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from storage.models import FinancingEvent, RateType


# ============================================================
# INPUTS
# ============================================================

@dataclass
class TradeDraft:
    """
    Partial input for a new leveraged position.

    Any of borrowed/collateral/leverage may be omitted; the
    normalizer fills in the rest.
    """

    symbol: Optional[str]
    entry_price: Optional[Decimal]
    quantity: Optional[int]
    margin_rate: Optional[Decimal]
    """Base annual financing rate in percent."""

    entry_date: Optional[date] = None
    borrowed_amount: Optional[Decimal] = None
    collateral_amount: Optional[Decimal] = None
    leverage: Optional[Decimal] = None
    maintenance_margin: Optional[Decimal] = None
    rate_type: Optional[RateType] = None
    financing_currency: Optional[str] = None
    exit_price: Optional[Decimal] = None
    exit_date: Optional[date] = None
    notes: Optional[str] = None


# ============================================================
# RESULTS
# ============================================================

@dataclass(frozen=True)
class NormalizedPosition:
    """Fully resolved financing triple plus defaults."""

    symbol: str
    entry_price: Decimal
    quantity: int
    entry_date: date
    borrowed_amount: Decimal
    collateral_amount: Decimal
    leverage: Optional[Decimal]
    maintenance_margin: Decimal
    rate_type: RateType
    financing_currency: str
    margin_rate: Decimal
    exit_price: Optional[Decimal] = None
    exit_date: Optional[date] = None
    notes: Optional[str] = None

    @property
    def total_cost(self) -> Decimal:
        return self.entry_price * self.quantity


@dataclass
class ClosureResult:
    """
    Outcome of a FIFO close.

    A partial close is not an error: `leftover` holds the
    quantity that could not be matched against open lots.
    """

    requested_quantity: int
    closed_quantity: int
    leftover: int
    affected_trade_ids: List[UUID] = field(default_factory=list)
    gross_proceeds: Decimal = Decimal("0")
    entry_cost: Decimal = Decimal("0")
    message: str = ""

    @property
    def gross_pnl(self) -> Decimal:
        return self.gross_proceeds - self.entry_cost

    @property
    def is_partial(self) -> bool:
        return self.leftover > 0


@dataclass
class FinancingEventResult:
    """A recorded event plus the trade's financing state after it."""

    event: FinancingEvent
    borrowed_amount: Optional[Decimal]
    collateral_amount: Optional[Decimal]
    current_rate: Decimal


@dataclass(frozen=True)
class ImportRowError:
    row: int
    """1-based row number in the submitted batch."""

    message: str


@dataclass
class ImportResult:
    imported: int = 0
    errors: List[ImportRowError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)
