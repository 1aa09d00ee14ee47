"""
Margin Engine - Interest Accrual.

============================================================
RESPONSIBILITY
============================================================
Pure functions computing financing cost of a lot.

Accrual is piecewise-constant-rate integration over
[entry_date, end_date): the base rate applies from entry, and
each RATE_CHANGE event dated inside the window switches the
rate from its own date onwards. Every interval accrues

    principal * rate / 100 / 365 * days

with the daily amount carried at 10 dp and the interval amount
rounded to 2 dp before the intervals are summed. This can differ
by a cent from rounding only the total: 10000 at 10% for 31 days
then 20% for 30 days gives 84.93 + 164.38 = 249.31 here, while
summing unrounded intervals gives 249.32.

Principal is constant for the whole window;
REPAYMENT and COLLATERAL_TOPUP events do not change it.

============================================================
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from core.money import DAYS_IN_YEAR, HUNDRED, ZERO, intermediate, money
from storage.models import FinancingEvent, FinancingEventType, Trade


@dataclass(frozen=True)
class DailyInterest:
    day: date
    amount: Decimal


# ============================================================
# RATE TRACK
# ============================================================

def _rate_changes(
    events: Iterable[FinancingEvent],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[FinancingEvent]:
    """RATE_CHANGE events inside [start, end], oldest first."""
    selected = [
        e for e in events
        if e.event_type == FinancingEventType.RATE_CHANGE
        and (start is None or e.event_date >= start)
        and (end is None or e.event_date <= end)
    ]
    return sorted(selected, key=lambda e: e.event_date)


def rate_as_of(
    base_rate: Decimal,
    events: Iterable[FinancingEvent],
    as_of: date,
) -> Decimal:
    """Rate of the latest RATE_CHANGE not after `as_of`, else the base rate."""
    current = base_rate
    for event in _rate_changes(events, end=as_of):
        if event.rate is not None:
            current = event.rate
    return current


def daily_rate_amount(principal: Decimal, annual_rate: Decimal) -> Decimal:
    """Unrounded (10 dp) interest for one day."""
    yearly = intermediate(principal * annual_rate / HUNDRED)
    return intermediate(yearly / DAYS_IN_YEAR)


def daily_interest(principal: Decimal, annual_rate: Decimal) -> Decimal:
    """Interest for one day at `annual_rate`, 2 dp."""
    return money(daily_rate_amount(principal, annual_rate))


# ============================================================
# ACCRUAL
# ============================================================

def accrued_interest(
    principal: Decimal,
    base_rate: Decimal,
    entry_date: date,
    end_date: date,
    events: Sequence[FinancingEvent] = (),
) -> Decimal:
    """
    Cumulative interest from entry_date to end_date.

    Returns 0 when end_date precedes entry_date.
    """
    if end_date < entry_date:
        return money(ZERO)

    total = ZERO
    period_start = entry_date
    current_rate = base_rate

    for event in _rate_changes(events, entry_date, end_date):
        days = (event.event_date - period_start).days
        if days > 0:
            total += money(daily_rate_amount(principal, current_rate) * days)
        if event.rate is not None:
            current_rate = event.rate
        period_start = event.event_date

    remaining = (end_date - period_start).days
    if remaining > 0:
        total += money(daily_rate_amount(principal, current_rate) * remaining)

    return money(total)


def daily_interest_schedule(
    principal: Decimal,
    base_rate: Decimal,
    entry_date: date,
    exit_date: Optional[date],
    events: Sequence[FinancingEvent] = (),
) -> List[DailyInterest]:
    """One entry per calendar day, entry to exit inclusive."""
    if exit_date is None or exit_date < entry_date:
        return []

    schedule = []
    day = entry_date
    while day <= exit_date:
        schedule.append(
            DailyInterest(day, daily_interest(principal, rate_as_of(base_rate, events, day)))
        )
        day += timedelta(days=1)
    return schedule


# ============================================================
# TRADE HELPERS
# ============================================================

def trade_principal(trade: Trade) -> Decimal:
    """Borrowed amount, or the full cost when borrowed is unknown."""
    if trade.borrowed_amount is not None:
        return trade.borrowed_amount
    return trade.entry_price * trade.quantity


def trade_current_rate(trade: Trade, today: date) -> Decimal:
    return rate_as_of(trade.margin_rate, trade.financing_events, today)


def trade_total_interest(trade: Trade, today: date) -> Decimal:
    """Accrued interest up to the exit date, or today for open trades."""
    end_date = trade.exit_date or today
    return accrued_interest(
        trade_principal(trade),
        trade.margin_rate,
        trade.entry_date,
        end_date,
        trade.financing_events,
    )


def trade_daily_interest(trade: Trade, today: date) -> Decimal:
    return daily_interest(trade_principal(trade), trade_current_rate(trade, today))


def trade_interest_schedule(trade: Trade) -> List[DailyInterest]:
    return daily_interest_schedule(
        trade_principal(trade),
        trade.margin_rate,
        trade.entry_date,
        trade.exit_date,
        trade.financing_events,
    )
