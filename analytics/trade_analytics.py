"""
Analytics - Closed Trade Performance.

Win rate, monthly and per-symbol profit of closed lots. Profit
is net of accrued interest. A closed lot is dated by its exit,
an open lot by its entry.
"""

from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from core.money import HUNDRED, ZERO, money
from margin_engine.lots import is_closed, last_exit_date, profit
from storage.models import Trade


@dataclass(frozen=True)
class AnalyticsSummary:
    total_trades: int
    closed_trades: int
    winning_trades: int
    win_rate: Decimal
    """Percent of closed trades with positive profit, 2 dp."""

    total_profit: Decimal


@dataclass(frozen=True)
class MonthlyProfit:
    month: str
    """YYYY-MM"""

    profit: Decimal


@dataclass(frozen=True)
class SymbolProfit:
    symbol: str
    profit: Decimal
    count: int


def _reference_date(trade: Trade) -> date:
    if is_closed(trade):
        return last_exit_date(trade) or trade.entry_date
    return trade.entry_date


def _in_window(trades: Iterable[Trade], start: Optional[date], end: Optional[date]) -> List[Trade]:
    selected = []
    for trade in trades:
        day = _reference_date(trade)
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        selected.append(trade)
    return selected


def analytics_summary(
    trades: Iterable[Trade],
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> AnalyticsSummary:
    selected = _in_window(trades, start, end)
    closed = [t for t in selected if is_closed(t)]

    winning = 0
    total = ZERO
    for trade in closed:
        result = profit(trade, today)
        if result is None:
            continue
        if result > ZERO:
            winning += 1
        total += result

    win_rate = money(Decimal(winning) / Decimal(len(closed)) * HUNDRED) if closed else money(ZERO)
    return AnalyticsSummary(
        total_trades=len(selected),
        closed_trades=len(closed),
        winning_trades=winning,
        win_rate=win_rate,
        total_profit=money(total),
    )


def _month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def monthly_profit(
    trades: Iterable[Trade],
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[MonthlyProfit]:
    """
    Profit of closed lots per exit month.

    Every month of the window is present, zero when nothing closed.
    The window defaults to Jan 1 of last year through today.
    """
    start = start or date(today.year - 1, 1, 1)
    end = end or today

    months: Dict[str, Decimal] = OrderedDict()
    cursor = date(start.year, start.month, 1)
    while cursor <= end:
        months[_month_key(cursor)] = ZERO
        cursor = date(cursor.year + cursor.month // 12, cursor.month % 12 + 1, 1)

    for trade in trades:
        if not is_closed(trade):
            continue
        exit_day = last_exit_date(trade)
        if exit_day is None or exit_day < start or exit_day > end:
            continue
        result = profit(trade, today)
        if result is None:
            continue
        key = _month_key(exit_day)
        months[key] = months.get(key, ZERO) + result

    return [MonthlyProfit(month, money(value)) for month, value in months.items()]


def symbol_profit(
    trades: Iterable[Trade],
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[SymbolProfit]:
    """Profit and lot count per symbol with at least one closed lot, best first."""
    counts: Dict[str, int] = {}
    profits: Dict[str, Decimal] = {}

    for trade in _in_window(trades, start, end):
        counts[trade.symbol] = counts.get(trade.symbol, 0) + 1
        if not is_closed(trade):
            continue
        result = profit(trade, today)
        if result is not None:
            profits[trade.symbol] = profits.get(trade.symbol, ZERO) + result

    rows = [SymbolProfit(symbol, money(value), counts[symbol]) for symbol, value in profits.items()]
    return sorted(rows, key=lambda row: row.profit, reverse=True)
