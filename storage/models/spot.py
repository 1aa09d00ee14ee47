"""
Spot Transaction ORM Model.

Cash-settled buys, sells, dividends and cash movements of a
spot portfolio. The signed `amount` is the cash effect of the
transaction: negative for BUY and WITHDRAW.
"""

import enum
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from storage.models.base import Base, TimestampMixin, enum_column


CASH_TICKER = "USD"


class SpotTransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"


def signed_amount(
    transaction_type: SpotTransactionType,
    price: Decimal,
    quantity: Decimal,
) -> Decimal:
    """Cash effect of a transaction, rounded to 2 dp."""
    gross = (price * quantity).quantize(Decimal("0.01"))
    if transaction_type in (SpotTransactionType.BUY, SpotTransactionType.WITHDRAW):
        return -gross
    return gross


class SpotTransaction(Base, TimestampMixin):
    """One spot portfolio transaction."""

    __tablename__ = "spot_transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    portfolio_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("portfolios.id", ondelete="CASCADE"),
        nullable=False,
    )

    ticker: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    company: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
    )

    transaction_type: Mapped[SpotTransactionType] = mapped_column(
        enum_column(SpotTransactionType),
        nullable=False,
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(18, 4),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(18, 6),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        nullable=False,
        comment="Signed cash effect"
    )

    trade_date: Mapped[date] = mapped_column(
        nullable=False,
    )

    note: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    __table_args__ = (
        Index("idx_spot_portfolio_ticker", "portfolio_id", "ticker"),
    )

    def __repr__(self) -> str:
        return f"<SpotTransaction {self.transaction_type} {self.ticker} {self.quantity} @ {self.price}>"
