"""
Margin Engine - Store Interface.

============================================================
RESPONSIBILITY
============================================================
Abstract persistence boundary of the engine. The engine never
touches sessions or SQL; it reads and writes diary records
through a TradeStore.

============================================================
CONTRACT
============================================================
- Lookups taking a user id never return other users' rows
- find_open_lots returns lots without an exit date, oldest
  first (entry date, then id), locked for the transaction
  where the backend supports it
- transaction() commits on success and rolls back on ANY
  exception; nested use joins the outer transaction

============================================================
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import List, Optional
from uuid import UUID

from storage.models import (
    FinancingEvent,
    Portfolio,
    SpotTransaction,
    Trade,
    TradeClosure,
)


class TradeStore(ABC):
    """Persistence operations needed by the margin engine."""

    # ---------------------------------------------------------
    # Reads
    # ---------------------------------------------------------

    @abstractmethod
    def find_open_lots(self, user_id: UUID, symbol: str) -> List[Trade]:
        pass

    @abstractmethod
    def get_trade(self, trade_id: UUID, user_id: UUID) -> Optional[Trade]:
        pass

    @abstractmethod
    def get_active_portfolio(self, portfolio_id: UUID, user_id: UUID) -> Optional[Portfolio]:
        pass

    @abstractmethod
    def find_trades_of_portfolio(self, portfolio_id: UUID) -> List[Trade]:
        pass

    @abstractmethod
    def find_open_trades_of_user(self, user_id: UUID) -> List[Trade]:
        """Trades of the user without an exit date."""
        pass

    @abstractmethod
    def find_financing_events(self, trade_id: UUID, user_id: UUID) -> List[FinancingEvent]:
        pass

    @abstractmethod
    def find_transactions_of_portfolio(self, portfolio_id: UUID) -> List[SpotTransaction]:
        pass

    # ---------------------------------------------------------
    # Writes
    # ---------------------------------------------------------

    @abstractmethod
    def save_trade(self, trade: Trade) -> Trade:
        pass

    @abstractmethod
    def save_closure(self, closure: TradeClosure) -> TradeClosure:
        pass

    @abstractmethod
    def save_financing_event(self, event: FinancingEvent) -> FinancingEvent:
        pass

    @abstractmethod
    def delete_trade(self, trade: Trade) -> None:
        """Delete a trade together with its events and closures."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        pass
