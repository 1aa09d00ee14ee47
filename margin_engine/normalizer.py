"""
Margin Engine - Position Normalizer.

============================================================
RESPONSIBILITY
============================================================
Turns a partial TradeDraft into a fully resolved position:
borrowed amount, collateral (own funds) and leverage are
derived from whichever of them the user supplied.

============================================================
RESOLUTION ORDER (borrowed absent)
============================================================
1. leverage given  -> own = cost / leverage, borrowed = cost - own
2. collateral given -> borrowed = cost - collateral
3. neither          -> fully borrowed, collateral = 0

Borrowed given without collateral -> collateral = cost - borrowed.
Leverage absent and own funds > 0 -> leverage = cost / own.

All amounts are clamped at zero. Money is rounded to 2 dp,
leverage to 4 dp, HALF_UP.

============================================================
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from core.exceptions import ValidationError
from core.money import ZERO, ONE, intermediate, money, non_negative, rate
from margin_engine.types import NormalizedPosition, TradeDraft
from storage.models import RateType


DEFAULT_MAINTENANCE_MARGIN = Decimal("20")


def validate_draft(draft: TradeDraft) -> None:
    """
    Reject drafts missing required facts.

    Raises:
        ValidationError: On the first invalid field
    """
    if not draft.symbol or not draft.symbol.strip():
        raise ValidationError("symbol", "must not be blank")
    if draft.quantity is None:
        raise ValidationError("quantity", "is required")
    if draft.entry_price is None:
        raise ValidationError("entry_price", "is required")
    if draft.quantity < 1:
        raise ValidationError("quantity", "must be at least 1", draft.quantity)
    if draft.entry_price <= ZERO:
        raise ValidationError("entry_price", "must be positive", draft.entry_price)
    if draft.margin_rate is None:
        raise ValidationError("margin_rate", "is required")
    if draft.margin_rate < ZERO:
        raise ValidationError("margin_rate", "must not be negative", draft.margin_rate)
    if draft.leverage is not None and draft.leverage < ONE:
        raise ValidationError("leverage", "must be at least 1", draft.leverage)
    if draft.borrowed_amount is not None and draft.borrowed_amount < ZERO:
        raise ValidationError("borrowed_amount", "must not be negative", draft.borrowed_amount)
    if draft.collateral_amount is not None and draft.collateral_amount < ZERO:
        raise ValidationError("collateral_amount", "must not be negative", draft.collateral_amount)
    if draft.maintenance_margin is not None and not (ZERO <= draft.maintenance_margin < Decimal("100")):
        raise ValidationError("maintenance_margin", "must be within [0, 100)", draft.maintenance_margin)
    if draft.exit_price is not None and draft.exit_price <= ZERO:
        raise ValidationError("exit_price", "must be positive", draft.exit_price)


def _derive_leverage(cost: Decimal, borrowed: Decimal) -> Optional[Decimal]:
    own = cost - borrowed
    if own > ZERO:
        return rate(cost / own)
    return None


def normalize_draft(
    draft: TradeDraft,
    portfolio_currency: str,
    today: date,
) -> NormalizedPosition:
    """
    Validate and resolve a draft into a NormalizedPosition.

    Args:
        draft: User input
        portfolio_currency: Default financing currency
        today: Default entry date

    Raises:
        ValidationError: If the draft is invalid
    """
    validate_draft(draft)

    cost = draft.entry_price * draft.quantity
    borrowed = draft.borrowed_amount
    collateral = draft.collateral_amount
    leverage = draft.leverage

    if borrowed is None:
        if leverage is not None and leverage > ZERO:
            own = intermediate(cost / leverage)
            borrowed = money(non_negative(cost - own))
            collateral = money(non_negative(own))
        elif collateral is not None:
            borrowed = money(non_negative(cost - collateral))
        else:
            borrowed = money(cost)
            collateral = ZERO
    elif collateral is None:
        collateral = money(non_negative(cost - borrowed))

    borrowed = money(borrowed)
    collateral = money(collateral)

    if leverage is None:
        leverage = _derive_leverage(cost, borrowed)
    else:
        leverage = rate(leverage)

    return NormalizedPosition(
        symbol=draft.symbol.strip().upper(),
        entry_price=draft.entry_price,
        quantity=draft.quantity,
        entry_date=draft.entry_date or today,
        borrowed_amount=borrowed,
        collateral_amount=collateral,
        leverage=leverage,
        maintenance_margin=(
            draft.maintenance_margin
            if draft.maintenance_margin is not None
            else DEFAULT_MAINTENANCE_MARGIN
        ),
        rate_type=draft.rate_type or RateType.FIXED,
        financing_currency=(draft.financing_currency or portfolio_currency).upper(),
        margin_rate=rate(draft.margin_rate),
        exit_price=draft.exit_price,
        exit_date=draft.exit_date,
        notes=draft.notes,
    )
