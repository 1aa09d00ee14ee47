"""
Storage - SQLAlchemy Trade Store.

TradeStore implementation over one SQLAlchemy session. A store
instance is a unit of work: create one per request/session.

Usage:
    factory = initialize_database()
    with session_scope(factory) as session:
        service = TradeService(SqlAlchemyTradeStore(session))
        service.open_trade(draft, portfolio_id, user_id)
"""

import logging
from contextlib import contextmanager
from typing import Generator, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from margin_engine.store import TradeStore
from storage.database import DatabasePersistenceError
from storage.models import (
    FinancingEvent,
    Portfolio,
    SpotTransaction,
    Trade,
    TradeClosure,
)
from storage.repositories.diary import (
    FinancingEventRepository,
    PortfolioRepository,
    TradeClosureRepository,
    TradeRepository,
)
from storage.repositories.spot import SpotTransactionRepository


logger = logging.getLogger(__name__)


class SqlAlchemyTradeStore(TradeStore):
    """TradeStore backed by the diary repositories."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._portfolios = PortfolioRepository(session)
        self._trades = TradeRepository(session)
        self._events = FinancingEventRepository(session)
        self._closures = TradeClosureRepository(session)
        self._spot = SpotTransactionRepository(session)
        self._depth = 0

    @property
    def session(self) -> Session:
        return self._session

    # =========================================================
    # READS
    # =========================================================

    def find_open_lots(self, user_id: UUID, symbol: str) -> List[Trade]:
        return self._trades.find_open_lots(user_id, symbol)

    def get_trade(self, trade_id: UUID, user_id: UUID) -> Optional[Trade]:
        return self._trades.get_for_user(trade_id, user_id)

    def get_active_portfolio(self, portfolio_id: UUID, user_id: UUID) -> Optional[Portfolio]:
        return self._portfolios.get_active_for_user(portfolio_id, user_id)

    def find_trades_of_portfolio(self, portfolio_id: UUID) -> List[Trade]:
        return self._trades.list_by_portfolio(portfolio_id)

    def find_open_trades_of_user(self, user_id: UUID) -> List[Trade]:
        return self._trades.list_without_exit_for_user(user_id)

    def find_financing_events(self, trade_id: UUID, user_id: UUID) -> List[FinancingEvent]:
        return self._events.list_for_trade(trade_id, user_id)

    def find_transactions_of_portfolio(self, portfolio_id: UUID) -> List[SpotTransaction]:
        return self._spot.list_by_portfolio(portfolio_id)

    # =========================================================
    # WRITES
    # =========================================================

    def save_trade(self, trade: Trade) -> Trade:
        return self._trades.save(trade)

    def save_closure(self, closure: TradeClosure) -> TradeClosure:
        return self._closures.save(closure)

    def save_financing_event(self, event: FinancingEvent) -> FinancingEvent:
        return self._events.save(event)

    def delete_trade(self, trade: Trade) -> None:
        self._trades.delete(trade)

    # =========================================================
    # TRANSACTIONS
    # =========================================================

    @contextmanager
    def transaction(self) -> Generator["SqlAlchemyTradeStore", None, None]:
        """
        Commit on success, roll back on any exception.

        Nested calls join the outermost transaction.
        """
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            self._session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Store transaction failed, rolling back: {e}")
            self._session.rollback()
            raise DatabasePersistenceError(f"Transaction failed: {e}") from e
        except Exception:
            self._session.rollback()
            raise
        finally:
            self._depth = 0
