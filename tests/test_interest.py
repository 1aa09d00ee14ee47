"""
Tests for interest accrual.

============================================================
COVERAGE
============================================================
- Piecewise accrual across RATE_CHANGE events
- Zero and monotonic behavior over elapsed days
- Rate track lookup
- Daily schedule
- Trade helpers
============================================================
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from margin_engine.interest import (
    accrued_interest,
    daily_interest,
    daily_interest_schedule,
    rate_as_of,
    trade_current_rate,
    trade_interest_schedule,
    trade_principal,
    trade_total_interest,
)
from storage.models import FinancingEvent, FinancingEventType


def rate_change(day, new_rate):
    return FinancingEvent(
        event_type=FinancingEventType.RATE_CHANGE,
        event_date=day,
        rate=Decimal(new_rate),
    )


def repayment(day, amount):
    return FinancingEvent(
        event_type=FinancingEventType.REPAYMENT,
        event_date=day,
        amount_change=Decimal(amount),
    )


# =============================================================
# ACCRUAL
# =============================================================

class TestAccruedInterest:
    """Cumulative interest between two dates."""

    def test_rate_change_midway(self):
        """31 days at 10% then 30 days at 20% on 10000."""
        interest = accrued_interest(
            Decimal("10000"),
            Decimal("10"),
            date(2024, 1, 1),
            date(2024, 3, 2),
            [rate_change(date(2024, 2, 1), "20")],
        )

        assert interest == Decimal("249.31")

    def test_constant_rate_full_year(self):
        interest = accrued_interest(
            Decimal("10000"), Decimal("10"), date(2023, 1, 1), date(2024, 1, 1)
        )

        assert interest == Decimal("1000.00")

    def test_end_before_entry_is_zero(self):
        interest = accrued_interest(
            Decimal("10000"), Decimal("10"), date(2024, 3, 1), date(2024, 2, 1)
        )

        assert interest == Decimal("0.00")

    def test_same_day_is_zero(self):
        interest = accrued_interest(
            Decimal("10000"), Decimal("10"), date(2024, 3, 1), date(2024, 3, 1)
        )

        assert interest == Decimal("0.00")

    def test_events_outside_window_ignored(self):
        events = [rate_change(date(2024, 5, 1), "50")]

        with_event = accrued_interest(
            Decimal("10000"), Decimal("10"), date(2024, 1, 1), date(2024, 1, 11), events
        )
        without = accrued_interest(
            Decimal("10000"), Decimal("10"), date(2024, 1, 1), date(2024, 1, 11)
        )

        assert with_event == without

    def test_repayment_does_not_change_accrual(self):
        events = [repayment(date(2024, 1, 5), "5000")]

        interest = accrued_interest(
            Decimal("10000"), Decimal("10"), date(2024, 1, 1), date(2024, 1, 11), events
        )

        assert interest == Decimal("27.40")

    def test_monotonic_in_elapsed_days(self):
        entry = date(2024, 1, 1)
        events = [
            rate_change(date(2024, 1, 20), "15"),
            rate_change(date(2024, 2, 10), "0"),
            rate_change(date(2024, 3, 1), "7.5"),
        ]

        previous = Decimal("0")
        for days in range(0, 120):
            current = accrued_interest(
                Decimal("12345.67"), Decimal("12"), entry, entry + timedelta(days=days), events
            )
            assert current >= previous
            previous = current


# =============================================================
# RATE TRACK
# =============================================================

class TestRateAsOf:
    """Rate in force on a given day."""

    @pytest.fixture
    def events(self):
        return [
            rate_change(date(2024, 3, 1), "18"),
            rate_change(date(2024, 2, 1), "15"),
            repayment(date(2024, 2, 15), "100"),
        ]

    def test_base_rate_before_first_change(self, events):
        assert rate_as_of(Decimal("10"), events, date(2024, 1, 31)) == Decimal("10")

    def test_change_applies_from_its_date(self, events):
        assert rate_as_of(Decimal("10"), events, date(2024, 2, 1)) == Decimal("15")

    def test_latest_change_wins(self, events):
        assert rate_as_of(Decimal("10"), events, date(2024, 4, 1)) == Decimal("18")


# =============================================================
# SCHEDULE
# =============================================================

class TestSchedule:
    """Per-day interest list."""

    def test_daily_interest_rounded(self):
        assert daily_interest(Decimal("10000"), Decimal("10")) == Decimal("2.74")

    def test_schedule_switches_rate(self):
        schedule = daily_interest_schedule(
            Decimal("10000"),
            Decimal("10"),
            date(2024, 1, 30),
            date(2024, 2, 2),
            [rate_change(date(2024, 2, 1), "20")],
        )

        assert [d.day for d in schedule] == [
            date(2024, 1, 30),
            date(2024, 1, 31),
            date(2024, 2, 1),
            date(2024, 2, 2),
        ]
        assert [d.amount for d in schedule] == [
            Decimal("2.74"),
            Decimal("2.74"),
            Decimal("5.48"),
            Decimal("5.48"),
        ]

    def test_schedule_empty_without_exit(self):
        assert daily_interest_schedule(
            Decimal("10000"), Decimal("10"), date(2024, 1, 1), None
        ) == []


# =============================================================
# TRADE HELPERS
# =============================================================

class TestTradeHelpers:
    """Interest facts read from a Trade."""

    def test_principal_falls_back_to_cost(self, trade_factory):
        trade = trade_factory(entry_price="50", quantity=4, borrowed_amount=None)

        assert trade_principal(trade) == Decimal("200")

    def test_open_trade_accrues_to_today(self, trade_factory):
        trade = trade_factory(borrowed_amount="10000", entry_date=date(2024, 1, 1))

        assert trade_total_interest(trade, date(2024, 1, 11)) == Decimal("27.40")

    def test_closed_trade_stops_at_exit(self, trade_factory):
        trade = trade_factory(
            borrowed_amount="10000",
            entry_date=date(2024, 1, 1),
            exit_date=date(2024, 1, 11),
            exit_price=Decimal("110"),
        )

        assert trade_total_interest(trade, date(2024, 6, 1)) == Decimal("27.40")
        assert len(trade_interest_schedule(trade)) == 11

    def test_current_rate_follows_events(self, trade_factory):
        trade = trade_factory(margin_rate="10")
        FinancingEvent(
            trade=trade,
            event_type=FinancingEventType.RATE_CHANGE,
            event_date=date(2024, 2, 1),
            rate=Decimal("16"),
        )

        assert trade_current_rate(trade, date(2024, 1, 15)) == Decimal("10")
        assert trade_current_rate(trade, date(2024, 2, 15)) == Decimal("16")
        assert trade.margin_rate == Decimal("10")
