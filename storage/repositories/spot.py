"""
Spot Transaction Repository.
"""

from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from storage.models import SpotTransaction
from storage.repositories.base import BaseRepository


class SpotTransactionRepository(BaseRepository[SpotTransaction]):
    """Repository for spot transactions."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, SpotTransaction, "SpotTransactionRepository")

    def save(self, transaction: SpotTransaction) -> SpotTransaction:
        return self._add(transaction)

    def list_by_portfolio(self, portfolio_id: UUID) -> List[SpotTransaction]:
        stmt = (
            select(SpotTransaction)
            .where(SpotTransaction.portfolio_id == portfolio_id)
            .order_by(SpotTransaction.trade_date.asc(), SpotTransaction.created_at.asc())
        )
        return self._execute_query(stmt)
