"""
Margin Diary ORM Models.

============================================================
PURPOSE
============================================================
Models for leveraged positions and their history: portfolios,
trades (lots), financing events and partial closures.

============================================================
DATA LIFECYCLE ROLE
============================================================
- Trade: mutable exit/financing facts, immutable open facts
- FinancingEvent: append-only, ordered by event date
- TradeClosure: immutable once created
- Children are removed together with their trade

============================================================
MODELS
============================================================
- Portfolio: Per-user container of trades/transactions
- Trade: One leveraged position (lot)
- FinancingEvent: Rate change, repayment or collateral top-up
- TradeClosure: Partial or full closure of a lot

============================================================
"""

import enum
import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storage.models.base import Base, TimestampMixin, enum_column


# ============================================================
# ENUMS
# ============================================================

class PortfolioType(str, enum.Enum):
    MARGIN = "MARGIN"
    SPOT = "SPOT"


class RateType(str, enum.Enum):
    FIXED = "FIXED"
    FLOATING = "FLOATING"


class FinancingEventType(str, enum.Enum):
    RATE_CHANGE = "RATE_CHANGE"
    REPAYMENT = "REPAYMENT"
    COLLATERAL_TOPUP = "COLLATERAL_TOPUP"


# ============================================================
# PORTFOLIO
# ============================================================

class Portfolio(Base, TimestampMixin):
    """
    Portfolio owned by a single user.

    Portfolios are soft-deactivated; only active portfolios
    accept new trades.
    """

    __tablename__ = "portfolios"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
        comment="Portfolio identifier"
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        nullable=False,
        index=True,
        comment="Owning user"
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Display name"
    )

    portfolio_type: Mapped[PortfolioType] = mapped_column(
        enum_column(PortfolioType),
        nullable=False,
        default=PortfolioType.MARGIN,
        comment="MARGIN or SPOT"
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="RUB",
        comment="Portfolio currency"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Inactive portfolios are hidden from trading operations"
    )

    trades: Mapped[List["Trade"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Portfolio {self.id} {self.name!r} {self.portfolio_type}>"


# ============================================================
# TRADE
# ============================================================

class Trade(Base, TimestampMixin):
    """
    One leveraged position (lot).

    "Closed" means every unit has been closed through a
    TradeClosure. Exit price/date are stamped only when the
    last unit is closed.
    """

    __tablename__ = "trades"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
        comment="Trade identifier"
    )

    portfolio_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("portfolios.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Open facts
    symbol: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Upper-cased ticker"
    )

    entry_price: Mapped[Decimal] = mapped_column(
        Numeric(18, 4),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    entry_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    # Exit facts
    exit_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(18, 4),
        nullable=True,
    )

    exit_date: Mapped[Optional[date]] = mapped_column(
        nullable=True,
    )

    # Financing
    borrowed_amount: Mapped[Optional[Decimal]] = mapped_column(
        nullable=True,
        comment="Broker loan; null means the whole cost is financed"
    )

    collateral_amount: Mapped[Optional[Decimal]] = mapped_column(
        nullable=True,
        comment="Own funds"
    )

    leverage: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 4),
        nullable=True,
    )

    maintenance_margin: Mapped[Decimal] = mapped_column(
        Numeric(10, 4),
        nullable=False,
        default=Decimal("20"),
        comment="Percent"
    )

    rate_type: Mapped[RateType] = mapped_column(
        enum_column(RateType),
        nullable=False,
        default=RateType.FIXED,
    )

    financing_currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="RUB",
    )

    margin_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 4),
        nullable=False,
        comment="Base annual rate in percent"
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    portfolio: Mapped["Portfolio"] = relationship(back_populates="trades")

    financing_events: Mapped[List["FinancingEvent"]] = relationship(
        back_populates="trade",
        cascade="all, delete-orphan",
        order_by="FinancingEvent.event_date",
    )

    closures: Mapped[List["TradeClosure"]] = relationship(
        back_populates="trade",
        cascade="all, delete-orphan",
        order_by="TradeClosure.exit_date",
    )

    __table_args__ = (
        Index("idx_trades_symbol_entry", "symbol", "entry_date"),
    )

    def __repr__(self) -> str:
        return f"<Trade {self.id} {self.symbol} x{self.quantity} @ {self.entry_price}>"


# ============================================================
# CHILDREN
# ============================================================

class FinancingEvent(Base, TimestampMixin):
    """Rate change, repayment or collateral top-up of a trade."""

    __tablename__ = "financing_events"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    trade_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("trades.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    event_type: Mapped[FinancingEventType] = mapped_column(
        enum_column(FinancingEventType),
        nullable=False,
    )

    event_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 4),
        nullable=True,
        comment="New annual rate for RATE_CHANGE"
    )

    amount_change: Mapped[Optional[Decimal]] = mapped_column(
        nullable=True,
        comment="Signed amount for REPAYMENT/COLLATERAL_TOPUP"
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    trade: Mapped["Trade"] = relationship(back_populates="financing_events")

    def __repr__(self) -> str:
        return f"<FinancingEvent {self.event_type} {self.event_date} rate={self.rate}>"


class TradeClosure(Base, TimestampMixin):
    """Closure of part (or all) of a lot."""

    __tablename__ = "trade_closures"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    trade_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("trades.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    closed_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    exit_price: Mapped[Decimal] = mapped_column(
        Numeric(18, 4),
        nullable=False,
    )

    exit_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    trade: Mapped["Trade"] = relationship(back_populates="closures")

    def __repr__(self) -> str:
        return f"<TradeClosure {self.closed_quantity} @ {self.exit_price} on {self.exit_date}>"
