"""
Analytics - Spot Holdings.

Folds spot transactions into per-ticker holdings at running
average cost:

- BUY adds quantity and cost
- SELL releases the average cost of the sold quantity and
  realizes the difference to the proceeds; quantity and cost
  never go below zero
- DIVIDEND adds to realized PnL only

Rows of the cash ticker (USD) are not holdings; their signed
amounts make up the cash position.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from core.money import ZERO, money
from storage.models import CASH_TICKER, SpotTransaction, SpotTransactionType


@dataclass
class SpotPosition:
    ticker: str
    company: Optional[str] = None
    quantity: Decimal = ZERO
    total_cost: Decimal = ZERO
    realized_pnl: Decimal = ZERO
    dividends: Decimal = ZERO

    @property
    def is_open(self) -> bool:
        return self.quantity > ZERO

    @property
    def average_price(self) -> Decimal:
        if self.quantity <= ZERO:
            return money(ZERO)
        return money(self.total_cost / self.quantity)


@dataclass(frozen=True)
class SpotHoldings:
    positions: List[SpotPosition]
    cash: Decimal


@dataclass(frozen=True)
class SpotStatistics:
    total_transactions: int
    cash_balance: Decimal
    total_invested: Decimal
    total_received: Decimal
    total_dividends: Decimal
    realized_pnl: Decimal
    """Trading gains plus dividends."""

    net_profit: Decimal
    """received - invested + dividends"""

    open_positions: int
    closed_positions: int
    total_positions: int


@dataclass(frozen=True)
class TickerStatistics:
    ticker: str
    company: Optional[str]
    total_bought: Decimal
    total_sold: Decimal
    total_dividends: Decimal
    net_result: Decimal


def _ordered(transactions: Iterable[SpotTransaction]) -> List[SpotTransaction]:
    return sorted(transactions, key=lambda tx: tx.trade_date)


def _fold(transactions: Iterable[SpotTransaction]) -> Dict[str, SpotPosition]:
    positions: Dict[str, SpotPosition] = {}

    for tx in _ordered(transactions):
        if tx.ticker == CASH_TICKER:
            continue
        position = positions.setdefault(tx.ticker, SpotPosition(ticker=tx.ticker))
        if tx.company and not position.company:
            position.company = tx.company

        if tx.transaction_type == SpotTransactionType.BUY:
            position.quantity += tx.quantity
            position.total_cost += abs(tx.amount)
        elif tx.transaction_type == SpotTransactionType.SELL:
            average = (
                position.total_cost / position.quantity if position.quantity > ZERO else ZERO
            )
            released = average * tx.quantity
            position.realized_pnl += abs(tx.amount) - released
            position.total_cost = max(position.total_cost - released, ZERO)
            position.quantity = max(position.quantity - tx.quantity, ZERO)
        elif tx.transaction_type == SpotTransactionType.DIVIDEND:
            position.realized_pnl += tx.amount
            position.dividends += tx.amount

    for position in positions.values():
        position.total_cost = money(position.total_cost)
        position.realized_pnl = money(position.realized_pnl)
        position.dividends = money(position.dividends)
    return positions


def spot_positions(transactions: Iterable[SpotTransaction]) -> SpotHoldings:
    """Open holdings (sorted by ticker) and the cash position."""
    transactions = list(transactions)
    cash = sum((tx.amount for tx in transactions if tx.ticker == CASH_TICKER), ZERO)
    holdings = [p for p in _fold(transactions).values() if p.is_open]
    return SpotHoldings(
        positions=sorted(holdings, key=lambda p: p.ticker),
        cash=money(cash),
    )


def _sum_amounts(transactions: Iterable[SpotTransaction], kind: SpotTransactionType) -> Decimal:
    return sum((abs(tx.amount) for tx in transactions if tx.transaction_type == kind), ZERO)


def spot_statistics(transactions: Iterable[SpotTransaction]) -> SpotStatistics:
    transactions = list(transactions)
    positions = _fold(transactions)

    invested = _sum_amounts(transactions, SpotTransactionType.BUY)
    received = _sum_amounts(transactions, SpotTransactionType.SELL)
    dividends = sum(
        (tx.amount for tx in transactions if tx.transaction_type == SpotTransactionType.DIVIDEND),
        ZERO,
    )
    open_count = sum(1 for p in positions.values() if p.is_open)

    return SpotStatistics(
        total_transactions=len(transactions),
        cash_balance=money(sum((tx.amount for tx in transactions), ZERO)),
        total_invested=money(invested),
        total_received=money(received),
        total_dividends=money(dividends),
        realized_pnl=money(sum((p.realized_pnl for p in positions.values()), ZERO)),
        net_profit=money(received - invested + dividends),
        open_positions=open_count,
        closed_positions=len(positions) - open_count,
        total_positions=len(positions),
    )


def spot_ticker_statistics(transactions: Iterable[SpotTransaction]) -> List[TickerStatistics]:
    """Per-ticker totals, cash ticker excluded, sorted by ticker."""
    by_ticker: Dict[str, List[SpotTransaction]] = {}
    for tx in transactions:
        if tx.ticker != CASH_TICKER:
            by_ticker.setdefault(tx.ticker, []).append(tx)

    rows = []
    for ticker in sorted(by_ticker):
        items = by_ticker[ticker]
        bought = _sum_amounts(items, SpotTransactionType.BUY)
        sold = _sum_amounts(items, SpotTransactionType.SELL)
        dividends = sum(
            (tx.amount for tx in items if tx.transaction_type == SpotTransactionType.DIVIDEND),
            ZERO,
        )
        rows.append(TickerStatistics(
            ticker=ticker,
            company=next((tx.company for tx in items if tx.company), None),
            total_bought=money(bought),
            total_sold=money(sold),
            total_dividends=money(dividends),
            net_result=money(sold - bought + dividends),
        ))
    return rows
