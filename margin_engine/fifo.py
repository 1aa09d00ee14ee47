"""
Margin Engine - FIFO Closure.

============================================================
RESPONSIBILITY
============================================================
Closes a quantity of a symbol across the user's open lots,
oldest lot first.

============================================================
ALGORITHM
============================================================
1. Load lots of (user, symbol) without exit date, oldest first
2. For each lot while quantity remains:
   portion = min(remaining, open quantity of the lot)
   record a TradeClosure for portion at the exit price/date
3. A lot whose whole open quantity was taken gets its own
   exit price/date stamped
4. Quantity left when lots run out is reported as leftover

The caller wraps `close` in one store transaction so either
every closure of the call persists or none does.

============================================================
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from core.exceptions import NotFoundError, ValidationError
from core.money import ZERO, money
from margin_engine.lots import open_quantity
from margin_engine.store import TradeStore
from margin_engine.types import ClosureResult
from storage.models import TradeClosure


logger = logging.getLogger(__name__)

COMPLETED_MESSAGE = "FIFO close completed"
PARTIAL_MESSAGE = "FIFO close partially completed: not enough open lots"


def closure_notes(notes: Optional[str]) -> str:
    if notes and notes.strip():
        return f"FIFO: {notes.strip()}"
    return "FIFO"


class FifoClosureEngine:
    """Oldest-lot-first closure over a TradeStore."""

    def __init__(self, store: TradeStore) -> None:
        self._store = store

    def close(
        self,
        user_id: UUID,
        symbol: str,
        quantity: int,
        exit_price: Decimal,
        exit_date: date,
        notes: Optional[str] = None,
    ) -> ClosureResult:
        """
        Close `quantity` units of `symbol`.

        Raises:
            ValidationError: On blank symbol, quantity < 1 or exit price <= 0
            NotFoundError: If the user has no open lots of the symbol
        """
        if not symbol or not symbol.strip():
            raise ValidationError("symbol", "must not be blank")
        if quantity is None or quantity < 1:
            raise ValidationError("quantity", "must be at least 1", quantity)
        if exit_price is None or exit_price <= ZERO:
            raise ValidationError("exit_price", "must be positive", exit_price)

        symbol = symbol.strip().upper()
        lots = self._store.find_open_lots(user_id, symbol)
        if not lots:
            raise NotFoundError("open lots", symbol, f"No open trades for symbol {symbol}")

        result = ClosureResult(
            requested_quantity=quantity,
            closed_quantity=0,
            leftover=quantity,
        )
        remaining = quantity

        for lot in lots:
            if remaining <= 0:
                break
            available = open_quantity(lot)
            if available <= 0:
                continue

            portion = min(remaining, available)
            closure = TradeClosure(
                trade=lot,
                closed_quantity=portion,
                exit_price=exit_price,
                exit_date=exit_date,
                notes=closure_notes(notes),
            )
            self._store.save_closure(closure)

            remaining -= portion
            result.closed_quantity += portion
            result.affected_trade_ids.append(lot.id)
            result.gross_proceeds += exit_price * portion
            result.entry_cost += lot.entry_price * portion

            if portion == available:
                lot.exit_price = exit_price
                lot.exit_date = exit_date
                self._store.save_trade(lot)

        result.leftover = remaining
        result.gross_proceeds = money(result.gross_proceeds)
        result.entry_cost = money(result.entry_cost)
        result.message = PARTIAL_MESSAGE if remaining > 0 else COMPLETED_MESSAGE

        logger.info(
            f"FIFO close {symbol}: requested={quantity} closed={result.closed_quantity} "
            f"leftover={remaining} lots={len(result.affected_trade_ids)}"
        )
        return result
