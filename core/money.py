"""
Core Module - Decimal Helpers.

All arithmetic in the diary is exact decimal with HALF_UP
rounding:

- money amounts: 2 decimal places
- rates and leverage: 4 decimal places
- intermediate ratios: 10 decimal places
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional


ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
DAYS_IN_YEAR = Decimal("365")
DAYS_IN_MONTH = Decimal("30")

MONEY_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")
INTERMEDIATE_PLACES = Decimal("0.0000000001")


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert a loosely typed value to Decimal.

    Floats go through str() so 0.1 stays 0.1. None and blank
    strings map to None.

    Raises:
        ValueError: If the value is not a number
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, float):
        value = str(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        result = Decimal(text.replace(",", "."))
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Not a number: {value!r}")
    return result


def money(value: Decimal) -> Decimal:
    """Round to 2 dp, HALF_UP."""
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def rate(value: Decimal) -> Decimal:
    """Round to 4 dp, HALF_UP."""
    return value.quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def intermediate(value: Decimal) -> Decimal:
    """Round to 10 dp, HALF_UP."""
    return value.quantize(INTERMEDIATE_PLACES, rounding=ROUND_HALF_UP)


def non_negative(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


__all__ = [
    "ZERO",
    "ONE",
    "HUNDRED",
    "DAYS_IN_YEAR",
    "DAYS_IN_MONTH",
    "to_decimal",
    "money",
    "rate",
    "intermediate",
    "non_negative",
]
