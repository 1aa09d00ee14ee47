"""
Margin Engine - Financing Events.

Builds financing events and applies their side effects to the
trade:

- REPAYMENT reduces borrowed amount (never below zero)
- COLLATERAL_TOPUP adds to collateral
- RATE_CHANGE leaves the base rate alone; accrual reads the
  event track
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from core.exceptions import ValidationError
from core.money import ZERO, money, non_negative, rate as round_rate
from storage.models import FinancingEvent, FinancingEventType, Trade


def build_financing_event(
    trade: Trade,
    event_type: FinancingEventType,
    event_date: date,
    rate: Optional[Decimal] = None,
    amount_change: Optional[Decimal] = None,
    notes: Optional[str] = None,
) -> FinancingEvent:
    """
    Validate an event, apply it to `trade` and return it.

    The event is attached to the trade's event collection but
    not persisted.

    Raises:
        ValidationError: On missing type/date/rate or a negative rate
    """
    if event_type is None:
        raise ValidationError("event_type", "is required")
    try:
        event_type = FinancingEventType(event_type)
    except ValueError as e:
        raise ValidationError("event_type", "unknown event type", event_type) from e
    if event_date is None:
        raise ValidationError("event_date", "is required")
    if event_type == FinancingEventType.RATE_CHANGE:
        if rate is None:
            raise ValidationError("rate", "is required for RATE_CHANGE")
        if rate < ZERO:
            raise ValidationError("rate", "must not be negative", rate)

    if event_type == FinancingEventType.REPAYMENT and amount_change is not None:
        current = trade.borrowed_amount if trade.borrowed_amount is not None else ZERO
        trade.borrowed_amount = money(non_negative(current - amount_change))
    elif event_type == FinancingEventType.COLLATERAL_TOPUP and amount_change is not None:
        current = trade.collateral_amount if trade.collateral_amount is not None else ZERO
        trade.collateral_amount = money(current + amount_change)

    return FinancingEvent(
        trade=trade,
        event_type=event_type,
        event_date=event_date,
        rate=round_rate(rate) if rate is not None else None,
        amount_change=money(amount_change) if amount_change is not None else None,
        notes=notes,
    )
