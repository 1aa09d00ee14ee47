"""
Margin Diary Repositories.

Data access for portfolios, trades and their children. Every
lookup that takes a user id only returns rows owned by that user.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from storage.models import (
    FinancingEvent,
    Portfolio,
    Trade,
    TradeClosure,
)
from storage.repositories.base import BaseRepository


class PortfolioRepository(BaseRepository[Portfolio]):
    """Repository for portfolios."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, Portfolio, "PortfolioRepository")

    def create(self, portfolio: Portfolio) -> Portfolio:
        return self._add(portfolio)

    def get_active_for_user(self, portfolio_id: UUID, user_id: UUID) -> Optional[Portfolio]:
        stmt = (
            select(Portfolio)
            .where(Portfolio.id == portfolio_id)
            .where(Portfolio.user_id == user_id)
            .where(Portfolio.is_active.is_(True))
        )
        return self._execute_scalar(stmt)


class TradeRepository(BaseRepository[Trade]):
    """Repository for trades (lots)."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, Trade, "TradeRepository")

    def save(self, trade: Trade) -> Trade:
        return self._add(trade)

    def delete(self, trade: Trade) -> None:
        self._delete(trade)

    def get_for_user(self, trade_id: UUID, user_id: UUID) -> Optional[Trade]:
        stmt = (
            select(Trade)
            .join(Trade.portfolio)
            .where(Trade.id == trade_id)
            .where(Portfolio.user_id == user_id)
        )
        return self._execute_scalar(stmt)

    def find_open_lots(self, user_id: UUID, symbol: str) -> List[Trade]:
        """
        Lots of `symbol` without an exit date, oldest first.

        Rows are locked FOR UPDATE where the backend supports it
        so concurrent closes of the same symbol serialize.
        """
        stmt = (
            select(Trade)
            .join(Trade.portfolio)
            .where(Portfolio.user_id == user_id)
            .where(Trade.symbol == symbol)
            .where(Trade.exit_date.is_(None))
            .order_by(Trade.entry_date.asc(), Trade.id.asc())
            .with_for_update(of=Trade)
        )
        return self._execute_query(stmt)

    def list_by_portfolio(self, portfolio_id: UUID) -> List[Trade]:
        stmt = (
            select(Trade)
            .where(Trade.portfolio_id == portfolio_id)
            .order_by(Trade.entry_date.asc(), Trade.id.asc())
        )
        return self._execute_query(stmt)

    def list_without_exit_for_user(self, user_id: UUID) -> List[Trade]:
        stmt = (
            select(Trade)
            .join(Trade.portfolio)
            .where(Portfolio.user_id == user_id)
            .where(Trade.exit_date.is_(None))
            .order_by(Trade.entry_date.asc(), Trade.id.asc())
        )
        return self._execute_query(stmt)


class FinancingEventRepository(BaseRepository[FinancingEvent]):
    """Repository for financing events."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, FinancingEvent, "FinancingEventRepository")

    def save(self, event: FinancingEvent) -> FinancingEvent:
        return self._add(event)

    def list_for_trade(self, trade_id: UUID, user_id: UUID) -> List[FinancingEvent]:
        stmt = (
            select(FinancingEvent)
            .join(FinancingEvent.trade)
            .join(Trade.portfolio)
            .where(FinancingEvent.trade_id == trade_id)
            .where(Portfolio.user_id == user_id)
            .order_by(FinancingEvent.event_date.asc(), FinancingEvent.created_at.asc())
        )
        return self._execute_query(stmt)


class TradeClosureRepository(BaseRepository[TradeClosure]):
    """Repository for trade closures. Closures are never updated."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, TradeClosure, "TradeClosureRepository")

    def save(self, closure: TradeClosure) -> TradeClosure:
        return self._add(closure)
