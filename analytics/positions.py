"""
Analytics - Open Margin Positions.

Read-side view of lots that still have open quantity.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import UUID

from core.money import HUNDRED, ZERO, money
from margin_engine.interest import trade_current_rate, trade_daily_interest, trade_principal
from margin_engine.lots import liquidation_price, open_quantity
from storage.models import Trade


@dataclass(frozen=True)
class OpenPosition:
    trade_id: UUID
    symbol: str
    entry_price: Decimal
    quantity: int
    open_quantity: int
    entry_date: date
    exposure: Decimal
    """entry price x quantity"""

    borrowed: Decimal
    ltv: Decimal
    """borrowed / exposure, percent"""

    rate: Decimal
    """Annual rate in effect today."""

    daily_interest: Decimal
    maintenance_margin: Decimal
    liquidation_price: Optional[Decimal]
    held_days: int


def open_margin_positions(trades: Iterable[Trade], today: date) -> List[OpenPosition]:
    """One row per lot with open quantity, in input order."""
    positions = []
    for trade in trades:
        remaining = open_quantity(trade)
        if remaining <= 0:
            continue
        exposure = trade.entry_price * trade.quantity
        borrowed = trade_principal(trade)
        ltv = money(borrowed / exposure * HUNDRED) if exposure > ZERO else money(ZERO)
        positions.append(OpenPosition(
            trade_id=trade.id,
            symbol=trade.symbol,
            entry_price=trade.entry_price,
            quantity=trade.quantity,
            open_quantity=remaining,
            entry_date=trade.entry_date,
            exposure=money(exposure),
            borrowed=money(borrowed),
            ltv=ltv,
            rate=trade_current_rate(trade, today),
            daily_interest=trade_daily_interest(trade, today),
            maintenance_margin=trade.maintenance_margin,
            liquidation_price=liquidation_price(trade),
            held_days=max((today - trade.entry_date).days, 0),
        ))
    return positions
