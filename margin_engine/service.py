"""
Margin Engine - Trade Service.

============================================================
RESPONSIBILITY
============================================================
Entry point for every state-changing diary operation. Each
public method validates its input, then runs inside one store
transaction.

- open_trade: normalize a draft into a new lot
- fifo_close / close_part: close quantity of lots
- add_financing_event / apply_rate_change_to_open_trades
- bulk_import / delete_trade

============================================================
ERRORS
============================================================
- ValidationError: raised before anything is written
- NotFoundError: unknown trade/portfolio, no open lots
- Partial FIFO closes are reported through ClosureResult

============================================================
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Mapping, Any, Optional
from uuid import UUID

from core.clock import ClockProtocol, SystemClock
from core.exceptions import NotFoundError, ValidationError
from core.money import ZERO
from margin_engine.fifo import FifoClosureEngine
from margin_engine.financing import build_financing_event
from margin_engine.importer import parse_import_row
from margin_engine.interest import trade_current_rate
from margin_engine.lots import open_quantity
from margin_engine.normalizer import normalize_draft
from margin_engine.store import TradeStore
from margin_engine.types import (
    ClosureResult,
    FinancingEventResult,
    ImportResult,
    ImportRowError,
    NormalizedPosition,
    TradeDraft,
)
from storage.models import (
    FinancingEvent,
    FinancingEventType,
    Portfolio,
    Trade,
    TradeClosure,
)


logger = logging.getLogger(__name__)


class TradeService:
    """
    Trade accounting operations over a TradeStore.

    Usage:
        service = TradeService(SqlAlchemyTradeStore(session))
        trade = service.open_trade(draft, portfolio_id, user_id)
        result = service.fifo_close(user_id, "SBER", 10, Decimal("250"))
    """

    def __init__(self, store: TradeStore, clock: Optional[ClockProtocol] = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._fifo = FifoClosureEngine(store)

    # =========================================================
    # LOOKUPS
    # =========================================================

    def _require_portfolio(self, portfolio_id: UUID, user_id: UUID) -> Portfolio:
        portfolio = self._store.get_active_portfolio(portfolio_id, user_id)
        if portfolio is None:
            raise NotFoundError("Portfolio", portfolio_id)
        return portfolio

    def get_trade(self, trade_id: UUID, user_id: UUID) -> Trade:
        trade = self._store.get_trade(trade_id, user_id)
        if trade is None:
            raise NotFoundError("Trade", trade_id)
        return trade

    # =========================================================
    # OPEN
    # =========================================================

    def _build_trade(self, position: NormalizedPosition, portfolio: Portfolio) -> Trade:
        trade = Trade(
            portfolio=portfolio,
            symbol=position.symbol,
            entry_price=position.entry_price,
            quantity=position.quantity,
            entry_date=position.entry_date,
            borrowed_amount=position.borrowed_amount,
            collateral_amount=position.collateral_amount,
            leverage=position.leverage,
            maintenance_margin=position.maintenance_margin,
            rate_type=position.rate_type,
            financing_currency=position.financing_currency,
            margin_rate=position.margin_rate,
            notes=position.notes,
        )
        self._store.save_trade(trade)

        # Historical trades arrive already closed
        if position.exit_price is not None and position.exit_date is not None:
            trade.exit_price = position.exit_price
            trade.exit_date = position.exit_date
            self._store.save_closure(TradeClosure(
                trade=trade,
                closed_quantity=position.quantity,
                exit_price=position.exit_price,
                exit_date=position.exit_date,
                notes=position.notes,
            ))
        return trade

    def open_trade(self, draft: TradeDraft, portfolio_id: UUID, user_id: UUID) -> Trade:
        """
        Open a new lot in the user's portfolio.

        Raises:
            ValidationError: If the draft is invalid
            NotFoundError: If the portfolio is unknown or inactive
        """
        with self._store.transaction():
            portfolio = self._require_portfolio(portfolio_id, user_id)
            position = normalize_draft(draft, portfolio.currency, self._clock.today())
            trade = self._build_trade(position, portfolio)

        logger.info(
            f"Trade opened: {trade.symbol} x{trade.quantity} @ {trade.entry_price} "
            f"borrowed={trade.borrowed_amount} leverage={trade.leverage}"
        )
        return trade

    # =========================================================
    # CLOSE
    # =========================================================

    def fifo_close(
        self,
        user_id: UUID,
        symbol: str,
        quantity: int,
        exit_price: Decimal,
        exit_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> ClosureResult:
        """
        Close `quantity` of `symbol` oldest lot first, atomically.

        Lots are matched across all of the user's portfolios; there
        is no portfolio argument.

        Raises:
            ValidationError: On invalid input
            NotFoundError: If there are no open lots
        """
        with self._store.transaction():
            return self._fifo.close(
                user_id,
                symbol,
                quantity,
                exit_price,
                exit_date or self._clock.today(),
                notes,
            )

    def close_part(
        self,
        trade_id: UUID,
        user_id: UUID,
        quantity: int,
        exit_price: Decimal,
        exit_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> TradeClosure:
        """
        Close part of one specific lot.

        Raises:
            NotFoundError: If the trade is unknown
            ValidationError: If quantity is not within 1..open quantity
        """
        with self._store.transaction():
            trade = self.get_trade(trade_id, user_id)
            available = open_quantity(trade)
            if quantity is None or quantity <= 0:
                raise ValidationError("quantity", "must be positive", quantity)
            if quantity > available:
                raise ValidationError(
                    "quantity", f"exceeds open quantity {available}", quantity
                )
            if exit_price is None or exit_price <= ZERO:
                raise ValidationError("exit_price", "must be positive", exit_price)

            exit_date = exit_date or self._clock.today()
            closure = self._store.save_closure(TradeClosure(
                trade=trade,
                closed_quantity=quantity,
                exit_price=exit_price,
                exit_date=exit_date,
                notes=notes,
            ))
            if quantity == available:
                trade.exit_price = exit_price
                trade.exit_date = exit_date
                self._store.save_trade(trade)

        logger.info(f"Trade {trade_id} closed {quantity} of {available} @ {exit_price}")
        return closure

    # =========================================================
    # FINANCING
    # =========================================================

    def add_financing_event(
        self,
        trade_id: UUID,
        user_id: UUID,
        event_type: FinancingEventType,
        event_date: Optional[date] = None,
        rate: Optional[Decimal] = None,
        amount_change: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> FinancingEventResult:
        """
        Record a financing event on a trade.

        Raises:
            NotFoundError: If the trade is unknown
            ValidationError: If the event is incomplete
        """
        with self._store.transaction():
            trade = self.get_trade(trade_id, user_id)
            event = build_financing_event(
                trade,
                event_type,
                event_date or self._clock.today(),
                rate=rate,
                amount_change=amount_change,
                notes=notes,
            )
            self._store.save_financing_event(event)
            self._store.save_trade(trade)

        logger.info(f"Financing event recorded: {event.event_type.value} on trade {trade_id}")
        return FinancingEventResult(
            event=event,
            borrowed_amount=trade.borrowed_amount,
            collateral_amount=trade.collateral_amount,
            current_rate=trade_current_rate(trade, self._clock.today()),
        )

    def list_financing_events(self, trade_id: UUID, user_id: UUID) -> List[FinancingEvent]:
        self.get_trade(trade_id, user_id)
        return self._store.find_financing_events(trade_id, user_id)

    def apply_rate_change_to_open_trades(
        self,
        user_id: UUID,
        rate: Decimal,
        effective_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> int:
        """
        Record a RATE_CHANGE on every open trade of the user.

        Returns:
            Number of trades updated
        """
        if rate is None or rate < ZERO:
            raise ValidationError("rate", "must not be negative", rate)
        effective_date = effective_date or self._clock.today()

        updated = 0
        with self._store.transaction():
            for trade in self._store.find_open_trades_of_user(user_id):
                if open_quantity(trade) <= 0:
                    continue
                event = build_financing_event(
                    trade,
                    FinancingEventType.RATE_CHANGE,
                    effective_date,
                    rate=rate,
                    notes=notes or "Bulk rate change",
                )
                self._store.save_financing_event(event)
                updated += 1

        logger.info(f"Rate change to {rate}% from {effective_date} applied to {updated} trades")
        return updated

    # =========================================================
    # IMPORT / DELETE
    # =========================================================

    def bulk_import(
        self,
        portfolio_id: UUID,
        user_id: UUID,
        rows: Iterable[Mapping[str, Any]],
    ) -> ImportResult:
        """
        Import many trades; invalid rows are reported, not raised.

        Raises:
            NotFoundError: If the portfolio is unknown or inactive
        """
        result = ImportResult()
        with self._store.transaction():
            portfolio = self._require_portfolio(portfolio_id, user_id)
            for index, raw in enumerate(rows, start=1):
                try:
                    draft = parse_import_row(raw)
                    position = normalize_draft(draft, portfolio.currency, self._clock.today())
                except ValidationError as e:
                    result.errors.append(ImportRowError(index, e.message))
                    continue
                self._build_trade(position, portfolio)
                result.imported += 1

        logger.info(f"Bulk import into {portfolio_id}: imported={result.imported} errors={result.error_count}")
        return result

    def delete_trade(self, trade_id: UUID, user_id: UUID) -> None:
        """Delete a trade with its events and closures."""
        with self._store.transaction():
            trade = self.get_trade(trade_id, user_id)
            self._store.delete_trade(trade)
        logger.info(f"Trade deleted: {trade_id}")
