"""
Tests for lot facts and the analytics folds.

============================================================
COVERAGE
============================================================
- Lot facts: open quantity, liquidation, leverage, profit
- Open margin positions
- Portfolio statistics with and without live prices
- Trade analytics: summary, monthly, per symbol
- Spot holdings and statistics
============================================================
"""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from analytics import (
    analytics_summary,
    build_portfolio_statistics,
    monthly_profit,
    open_margin_positions,
    portfolio_statistics,
    spot_positions,
    spot_statistics,
    spot_ticker_statistics,
    symbol_profit,
)
from margin_engine.lots import (
    is_closed,
    leverage_value,
    liquidation_price,
    open_quantity,
    profit,
    realized_pnl,
)
from margin_engine.types import TradeDraft
from quote_sources.models import Quote
from storage.models import SpotTransaction, SpotTransactionType, signed_amount


TODAY = date(2024, 6, 1)


@pytest.fixture
def open_sber(trade_factory):
    return trade_factory(symbol="SBER", borrowed_amount="1000", margin_rate="10",
                         entry_date=date(2024, 5, 22))


@pytest.fixture
def partly_closed_sber(trade_factory):
    return trade_factory(symbol="SBER", borrowed_amount="2000", margin_rate="20",
                         entry_date=date(2024, 5, 22),
                         closures=[(4, "110", date(2024, 5, 30))])


@pytest.fixture
def closed_gazp(trade_factory):
    return trade_factory(symbol="GAZP", entry_price="50", borrowed_amount="500",
                         entry_date=date(2024, 5, 1), exit_date=date(2024, 5, 11),
                         exit_price=Decimal("60"),
                         closures=[(10, "60", date(2024, 5, 11))])


@pytest.fixture
def losing_aapl(trade_factory):
    return trade_factory(symbol="AAPL", quantity=5, borrowed_amount="500",
                         entry_date=date(2024, 2, 1), exit_date=date(2024, 2, 11),
                         exit_price=Decimal("90"),
                         closures=[(5, "90", date(2024, 2, 11))])


# =============================================================
# LOT FACTS
# =============================================================

class TestLotFacts:
    """Derived values of one trade."""

    def test_open_quantity_counts_closures(self, partly_closed_sber):
        assert open_quantity(partly_closed_sber) == 6
        assert not is_closed(partly_closed_sber)

    def test_stamped_exit_alone_is_not_closed(self, trade_factory):
        trade = trade_factory(exit_price=Decimal("120"), exit_date=date(2024, 2, 1))

        assert not is_closed(trade)

    def test_liquidation_price(self, trade_factory):
        trade = trade_factory(borrowed_amount="500", maintenance_margin="20")

        assert liquidation_price(trade) == Decimal("62.5000")

    def test_no_liquidation_without_debt(self, trade_factory):
        trade = trade_factory(borrowed_amount="0")

        assert liquidation_price(trade) is None

    def test_leverage_derived_from_own_funds(self, trade_factory):
        trade = trade_factory(borrowed_amount="750")

        assert leverage_value(trade) == Decimal("4.0000")

    def test_realized_pnl_of_closures(self, partly_closed_sber):
        assert realized_pnl(partly_closed_sber) == Decimal("40.00")

    def test_profit_net_of_interest(self, closed_gazp):
        assert profit(closed_gazp, TODAY) == Decimal("98.63")

    def test_profit_none_while_open(self, open_sber):
        assert profit(open_sber, TODAY) is None


# =============================================================
# OPEN POSITIONS
# =============================================================

class TestOpenPositions:
    """Rows for lots with open quantity."""

    def test_fields(self, trade_factory, closed_gazp):
        trade = trade_factory(borrowed_amount="500", entry_date=date(2024, 1, 1))

        positions = open_margin_positions([trade, closed_gazp], TODAY)

        assert len(positions) == 1
        position = positions[0]
        assert position.trade_id == trade.id
        assert position.exposure == Decimal("1000.00")
        assert position.ltv == Decimal("50.00")
        assert position.daily_interest == Decimal("0.14")
        assert position.liquidation_price == Decimal("62.5000")
        assert position.held_days == 152

    def test_future_entry_has_zero_held_days(self, trade_factory):
        trade = trade_factory(entry_date=date(2024, 7, 1))

        assert open_margin_positions([trade], TODAY)[0].held_days == 0


# =============================================================
# PORTFOLIO STATISTICS
# =============================================================

class TestPortfolioStatistics:
    """Aggregate statistics of a margin portfolio."""

    @pytest.fixture
    def trades(self, open_sber, partly_closed_sber, closed_gazp):
        return [open_sber, partly_closed_sber, closed_gazp]

    def test_totals(self, trades):
        stats = portfolio_statistics(trades, TODAY)

        assert stats.open_count == 2
        assert stats.closed_count == 1
        assert stats.total_cost_open == Decimal("2000.00")
        assert stats.total_shares_open == 16
        assert stats.borrowed_total == Decimal("3000.00")
        assert stats.average_rate == Decimal("16.6667")

    def test_interest(self, trades):
        stats = portfolio_statistics(trades, TODAY)

        assert stats.daily_interest == Decimal("1.37")
        assert stats.monthly_interest == Decimal("41.10")
        assert stats.yearly_interest == Decimal("500.05")
        assert stats.total_accrued_interest == Decimal("15.07")
        assert stats.total_interest_paid == Decimal("1.37")

    def test_realized(self, trades):
        stats = portfolio_statistics(trades, TODAY)

        assert stats.realized_pnl == Decimal("140.00")
        assert stats.realized_pnl_after_interest == Decimal("138.63")

    def test_potential_with_live_price(self, trades):
        stats = portfolio_statistics(trades, TODAY, {"SBER": Decimal("105")})

        assert stats.potential_pnl == Decimal("80.00")
        assert stats.potential_pnl_after_interest == Decimal("66.30")
        assert stats.priced_symbols == ["SBER"]
        assert stats.overall_pnl == Decimal("220.00")
        assert stats.overall_pnl_net == Decimal("204.93")

    def test_potential_omitted_without_price(self, trades):
        stats = portfolio_statistics(trades, TODAY, {"GAZP": Decimal("70")})

        assert stats.potential_pnl is None
        assert stats.potential_pnl_after_interest is None
        assert stats.overall_pnl == Decimal("140.00")

    def test_empty_portfolio(self):
        stats = portfolio_statistics([], TODAY)

        assert stats.open_count == 0
        assert stats.average_rate == Decimal("0.0000")


class TestBuildPortfolioStatistics:
    """Statistics of a stored portfolio marked to the quote cache."""

    @pytest.fixture
    def stored(self, service, portfolio, user_id):
        service.open_trade(
            TradeDraft(symbol="SBER", entry_price=Decimal("100"), quantity=10,
                       margin_rate=Decimal("10"), entry_date=TODAY),
            portfolio.id,
            user_id,
        )
        return portfolio

    @pytest.mark.asyncio
    async def test_marks_open_lots(self, store, stored, clock):
        cache = MagicMock()
        cache.get_prices = AsyncMock(return_value=[Quote("SBER", Decimal("110"), "moex", "RUB")])

        stats = await build_portfolio_statistics(store, cache, stored.id, clock=clock)

        cache.get_prices.assert_awaited_once_with(["SBER"], None)
        assert stats.potential_pnl == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_unavailable_quote_keeps_statistics(self, store, stored, clock):
        cache = MagicMock()
        cache.get_prices = AsyncMock(return_value=[])

        stats = await build_portfolio_statistics(store, cache, stored.id, clock=clock)

        assert stats.open_count == 1
        assert stats.potential_pnl is None


# =============================================================
# TRADE ANALYTICS
# =============================================================

class TestTradeAnalytics:
    """Win rate, monthly and per-symbol profit."""

    @pytest.fixture
    def trades(self, open_sber, closed_gazp, losing_aapl):
        return [open_sber, closed_gazp, losing_aapl]

    def test_summary(self, trades):
        summary = analytics_summary(trades, TODAY)

        assert summary.total_trades == 3
        assert summary.closed_trades == 2
        assert summary.winning_trades == 1
        assert summary.win_rate == Decimal("50.00")
        assert summary.total_profit == Decimal("47.26")

    def test_summary_window(self, trades):
        summary = analytics_summary(trades, TODAY, start=date(2024, 5, 1))

        assert summary.total_trades == 2
        assert summary.closed_trades == 1
        assert summary.win_rate == Decimal("100.00")

    def test_summary_without_closed(self, open_sber):
        assert analytics_summary([open_sber], TODAY).win_rate == Decimal("0.00")

    def test_monthly_zero_filled(self, trades):
        months = monthly_profit(trades, TODAY, start=date(2024, 1, 1), end=TODAY)

        assert [m.month for m in months] == [
            "2024-01", "2024-02", "2024-03", "2024-04", "2024-05", "2024-06",
        ]
        by_month = {m.month: m.profit for m in months}
        assert by_month["2024-02"] == Decimal("-51.37")
        assert by_month["2024-05"] == Decimal("98.63")
        assert by_month["2024-03"] == Decimal("0.00")

    def test_monthly_default_window(self, trades):
        months = monthly_profit(trades, TODAY)

        assert months[0].month == "2023-01"
        assert months[-1].month == "2024-06"
        assert len(months) == 18

    def test_symbol_profit_sorted(self, trades):
        rows = symbol_profit(trades, TODAY)

        assert [(r.symbol, r.profit, r.count) for r in rows] == [
            ("GAZP", Decimal("98.63"), 1),
            ("AAPL", Decimal("-51.37"), 1),
        ]


# =============================================================
# SPOT
# =============================================================

def spot(ticker, kind, price, quantity, day, company=None):
    price, quantity = Decimal(price), Decimal(quantity)
    return SpotTransaction(
        ticker=ticker,
        company=company,
        transaction_type=kind,
        price=price,
        quantity=quantity,
        amount=signed_amount(kind, price, quantity),
        trade_date=day,
    )


class TestSpot:
    """Spot holdings at running average cost."""

    @pytest.fixture
    def transactions(self):
        return [
            spot("USD", SpotTransactionType.DEPOSIT, "1", "10000", date(2024, 1, 1)),
            spot("AAPL", SpotTransactionType.BUY, "100", "10", date(2024, 1, 2), "Apple"),
            spot("AAPL", SpotTransactionType.BUY, "120", "10", date(2024, 1, 3)),
            spot("AAPL", SpotTransactionType.SELL, "130", "5", date(2024, 1, 4)),
            spot("AAPL", SpotTransactionType.DIVIDEND, "2", "15", date(2024, 1, 5)),
            spot("MSFT", SpotTransactionType.BUY, "300", "2", date(2024, 1, 6)),
            spot("MSFT", SpotTransactionType.SELL, "310", "2", date(2024, 1, 7)),
            spot("USD", SpotTransactionType.WITHDRAW, "1", "500", date(2024, 1, 8)),
        ]

    def test_positions(self, transactions):
        holdings = spot_positions(reversed(transactions))

        assert holdings.cash == Decimal("9500.00")
        assert [p.ticker for p in holdings.positions] == ["AAPL"]
        aapl = holdings.positions[0]
        assert aapl.company == "Apple"
        assert aapl.quantity == Decimal("15")
        assert aapl.total_cost == Decimal("1650.00")
        assert aapl.average_price == Decimal("110.00")
        assert aapl.realized_pnl == Decimal("130.00")
        assert aapl.dividends == Decimal("30.00")

    def test_oversell_closes_holding(self):
        transactions = [
            spot("AAPL", SpotTransactionType.BUY, "100", "10", date(2024, 1, 2)),
            spot("AAPL", SpotTransactionType.SELL, "120", "15", date(2024, 1, 3)),
        ]

        holdings = spot_positions(transactions)
        stats = spot_statistics(transactions)

        assert holdings.positions == []
        assert stats.open_positions == 0
        assert stats.closed_positions == 1
        assert stats.realized_pnl == Decimal("300.00")

    def test_statistics(self, transactions):
        stats = spot_statistics(transactions)

        assert stats.total_transactions == 8
        assert stats.cash_balance == Decimal("8000.00")
        assert stats.total_invested == Decimal("2800.00")
        assert stats.total_received == Decimal("1270.00")
        assert stats.total_dividends == Decimal("30.00")
        assert stats.realized_pnl == Decimal("150.00")
        assert stats.net_profit == Decimal("-1500.00")
        assert (stats.open_positions, stats.closed_positions, stats.total_positions) == (1, 1, 2)

    def test_ticker_statistics(self, transactions):
        rows = spot_ticker_statistics(transactions)

        assert [(r.ticker, r.total_bought, r.total_sold, r.total_dividends, r.net_result)
                for r in rows] == [
            ("AAPL", Decimal("2200.00"), Decimal("650.00"), Decimal("30.00"), Decimal("-1520.00")),
            ("MSFT", Decimal("600.00"), Decimal("620.00"), Decimal("0.00"), Decimal("20.00")),
        ]
        assert rows[0].company == "Apple"

    def test_positions_from_store(self, transactions, session, store, portfolio):
        for transaction in transactions:
            transaction.portfolio_id = portfolio.id
            session.add(transaction)
        session.commit()

        loaded = store.find_transactions_of_portfolio(portfolio.id)
        holdings = spot_positions(loaded)

        assert [t.trade_date for t in loaded] == sorted(t.trade_date for t in loaded)
        assert holdings.cash == Decimal("9500.00")
        assert holdings.positions[0].quantity == Decimal("15")
