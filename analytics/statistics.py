"""
Analytics - Portfolio Statistics.

============================================================
RESPONSIBILITY
============================================================
Aggregates a margin portfolio into one statistics record:
exposure, financing cost and profit, realized and potential.

============================================================
DEFINITIONS
============================================================
- open lot: open quantity > 0
- weighted average rate: today's rate weighted by borrowed
  amount across open lots
- monthly interest = daily x 30, yearly = daily x 365
- interest paid: accrued interest of closed lots
- realized PnL: (closure exit - entry) x closed quantity over
  every closure, before interest
- potential PnL: (live - entry) x open quantity, only for
  symbols with a live quote

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional
from uuid import UUID

from core.clock import ClockProtocol, SystemClock
from core.money import DAYS_IN_MONTH, DAYS_IN_YEAR, ZERO, money, rate
from margin_engine.interest import (
    trade_current_rate,
    trade_daily_interest,
    trade_principal,
    trade_total_interest,
)
from margin_engine.lots import open_quantity, realized_pnl
from margin_engine.store import TradeStore
from quote_sources.cache import QuoteCache
from storage.models import Trade


logger = logging.getLogger(__name__)


@dataclass
class PortfolioStatistics:
    open_count: int = 0
    closed_count: int = 0
    total_cost_open: Decimal = ZERO
    total_shares_open: int = 0
    borrowed_total: Decimal = ZERO
    average_rate: Decimal = ZERO
    daily_interest: Decimal = ZERO
    monthly_interest: Decimal = ZERO
    yearly_interest: Decimal = ZERO
    total_accrued_interest: Decimal = ZERO
    total_interest_paid: Decimal = ZERO
    realized_pnl: Decimal = ZERO
    potential_pnl: Optional[Decimal] = None
    """None when no open symbol had a live price."""

    potential_pnl_after_interest: Optional[Decimal] = None
    priced_symbols: List[str] = field(default_factory=list)

    @property
    def realized_pnl_after_interest(self) -> Decimal:
        return money(self.realized_pnl - self.total_interest_paid)

    @property
    def overall_pnl(self) -> Decimal:
        return money(self.realized_pnl + (self.potential_pnl or ZERO))

    @property
    def overall_pnl_net(self) -> Decimal:
        return money(self.realized_pnl_after_interest + (self.potential_pnl_after_interest or ZERO))


def portfolio_statistics(
    trades: Iterable[Trade],
    today: date,
    live_prices: Optional[Mapping[str, Decimal]] = None,
) -> PortfolioStatistics:
    """
    Fold trades into PortfolioStatistics.

    Args:
        trades: Trades of one portfolio
        today: Valuation date
        live_prices: symbol -> last price; missing symbols get no potential PnL
    """
    live_prices = live_prices or {}
    stats = PortfolioStatistics()

    weighted_rate = ZERO
    weight = ZERO
    daily_total = ZERO
    accrued_total = ZERO
    paid_total = ZERO
    realized_total = ZERO
    potential = ZERO
    potential_after = ZERO
    priced = []

    for trade in trades:
        accrued = trade_total_interest(trade, today)
        accrued_total += accrued
        realized_total += realized_pnl(trade)
        remaining = open_quantity(trade)

        if remaining <= 0:
            stats.closed_count += 1
            paid_total += accrued
            continue

        stats.open_count += 1
        borrowed = trade_principal(trade)
        stats.total_cost_open += trade.entry_price * trade.quantity
        stats.total_shares_open += remaining
        stats.borrowed_total += borrowed
        weighted_rate += trade_current_rate(trade, today) * borrowed
        weight += borrowed
        daily_total += trade_daily_interest(trade, today)

        live = live_prices.get(trade.symbol)
        if live is not None:
            pnl = (live - trade.entry_price) * remaining
            potential += pnl
            potential_after += pnl - accrued
            if trade.symbol not in priced:
                priced.append(trade.symbol)

    stats.total_cost_open = money(stats.total_cost_open)
    stats.borrowed_total = money(stats.borrowed_total)
    stats.average_rate = rate(weighted_rate / weight) if weight > ZERO else rate(ZERO)
    stats.daily_interest = money(daily_total)
    stats.monthly_interest = money(daily_total * DAYS_IN_MONTH)
    stats.yearly_interest = money(daily_total * DAYS_IN_YEAR)
    stats.total_accrued_interest = money(accrued_total)
    stats.total_interest_paid = money(paid_total)
    stats.realized_pnl = money(realized_total)
    if priced:
        stats.potential_pnl = money(potential)
        stats.potential_pnl_after_interest = money(potential_after)
    stats.priced_symbols = priced
    return stats


async def build_portfolio_statistics(
    store: TradeStore,
    quote_cache: QuoteCache,
    portfolio_id: UUID,
    clock: Optional[ClockProtocol] = None,
    ttl_seconds: Optional[float] = None,
) -> PortfolioStatistics:
    """
    Statistics of a stored portfolio marked to live prices.

    Quotes that cannot be fetched only drop the potential PnL of
    their symbol.
    """
    clock = clock or SystemClock()
    today = clock.today()
    trades = store.find_trades_of_portfolio(portfolio_id)

    open_symbols = [t.symbol for t in trades if open_quantity(t) > 0]
    quotes = await quote_cache.get_prices(open_symbols, ttl_seconds)
    live_prices: Dict[str, Decimal] = {q.ticker: q.price for q in quotes}

    missing = sorted(set(open_symbols) - set(live_prices))
    if missing:
        logger.warning(f"No live price for {missing}; potential PnL excludes them")

    return portfolio_statistics(trades, today, live_prices)
