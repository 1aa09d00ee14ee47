"""
Shared fixtures: in-memory database, store, service and a fixed clock.
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest

from core.clock import MockClock
from margin_engine.service import TradeService
from storage.database import (
    create_all_tables,
    create_database_engine,
    create_session_factory,
    session_scope,
)
from storage.models import Portfolio, PortfolioType, Trade, TradeClosure
from storage.store import SqlAlchemyTradeStore


TODAY = date(2024, 6, 1)


@pytest.fixture
def engine():
    engine = create_database_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    factory = create_session_factory(engine)
    with session_scope(factory) as session:
        yield session


@pytest.fixture
def store(session):
    return SqlAlchemyTradeStore(session)


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def portfolio(session, user_id):
    portfolio = Portfolio(
        user_id=user_id,
        name="Margin",
        portfolio_type=PortfolioType.MARGIN,
        currency="RUB",
        is_active=True,
    )
    session.add(portfolio)
    session.commit()
    return portfolio


@pytest.fixture
def clock():
    return MockClock.on_date(TODAY)


@pytest.fixture
def service(store, clock):
    return TradeService(store, clock)


@pytest.fixture
def trade_factory():
    """Build detached trades for pure calculations."""

    def make(
        symbol="SBER",
        entry_price="100",
        quantity=10,
        entry_date=date(2024, 1, 1),
        margin_rate="10",
        borrowed_amount="1000",
        maintenance_margin="20",
        closures=(),
        **kwargs,
    ):
        trade = Trade(
            id=uuid.uuid4(),
            symbol=symbol,
            entry_price=Decimal(entry_price),
            quantity=quantity,
            entry_date=entry_date,
            margin_rate=Decimal(margin_rate),
            borrowed_amount=Decimal(borrowed_amount) if borrowed_amount is not None else None,
            maintenance_margin=Decimal(maintenance_margin),
            **kwargs,
        )
        for closed_quantity, exit_price, exit_date in closures:
            TradeClosure(
                trade=trade,
                closed_quantity=closed_quantity,
                exit_price=Decimal(exit_price),
                exit_date=exit_date,
            )
        return trade

    return make
