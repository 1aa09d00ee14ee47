"""
Margin Engine - Lot Facts.

Derived values of a Trade, recomputed on every call. A lot is
closed when its open quantity is zero; the exit fields alone
do not decide it.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from core.money import HUNDRED, ONE, ZERO, money, rate
from margin_engine.interest import trade_principal, trade_total_interest
from storage.models import Trade


def total_cost(trade: Trade) -> Decimal:
    return money(trade.entry_price * trade.quantity)


def closed_quantity(trade: Trade) -> int:
    return sum(c.closed_quantity for c in trade.closures)


def open_quantity(trade: Trade) -> int:
    return trade.quantity - closed_quantity(trade)


def is_closed(trade: Trade) -> bool:
    return open_quantity(trade) <= 0


def leverage_value(trade: Trade) -> Optional[Decimal]:
    """Stored leverage, else cost / own funds when own funds are positive."""
    if trade.leverage is not None:
        return trade.leverage
    cost = trade.entry_price * trade.quantity
    if trade.borrowed_amount is not None and cost > ZERO:
        own = cost - trade.borrowed_amount
        if own > ZERO:
            return rate(cost / own)
    return None


def liquidation_price(trade: Trade) -> Optional[Decimal]:
    """
    Approximate price at which equity hits maintenance margin.

    principal / (quantity * (1 - mm/100)), 4 dp.
    """
    if trade.quantity <= 0:
        return None
    principal = trade_principal(trade)
    if principal <= ZERO:
        return None
    denominator = trade.quantity * (ONE - trade.maintenance_margin / HUNDRED)
    if denominator <= ZERO:
        return None
    return rate(principal / denominator)


def realized_pnl(trade: Trade) -> Decimal:
    """Gross PnL of the closed units, before interest."""
    pnl = sum(
        ((c.exit_price - trade.entry_price) * c.closed_quantity for c in trade.closures),
        ZERO,
    )
    return money(pnl)


def last_exit_date(trade: Trade) -> Optional[date]:
    if trade.exit_date is not None:
        return trade.exit_date
    dates = [c.exit_date for c in trade.closures]
    return max(dates) if dates else None


def profit(trade: Trade, today: date) -> Optional[Decimal]:
    """
    Net profit of a lot: gain of its closures (or of the stamped
    exit price when it has none) minus accrued interest.

    None while nothing has been closed.
    """
    if trade.closures:
        gain = sum(
            ((c.exit_price - trade.entry_price) * c.closed_quantity for c in trade.closures),
            ZERO,
        )
    elif trade.exit_price is not None:
        gain = (trade.exit_price - trade.entry_price) * trade.quantity
    else:
        return None
    return money(gain - trade_total_interest(trade, today))
