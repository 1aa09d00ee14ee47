"""
Margin Engine - Bulk Import Rows.

Schema for one row of a bulk trade import. Rows arrive as
loosely typed mappings (parsed CSV or JSON): numbers may be
strings with a decimal comma, dates may be ISO or DD.MM.YYYY.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as SchemaError, field_validator

from core.exceptions import ValidationError
from core.money import to_decimal
from margin_engine.types import TradeDraft


DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y")


def parse_flexible_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unrecognized date {text!r}")


class ImportRow(BaseModel):
    """One imported trade."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    symbol: str = Field(min_length=1)
    entry_price: Decimal = Field(alias="entryPrice", gt=0)
    quantity: int = Field(ge=1)
    margin_rate: Decimal = Field(alias="marginAmount", ge=0)
    entry_date: date = Field(alias="entryDate")
    exit_date: Optional[date] = Field(default=None, alias="exitDate")
    exit_price: Optional[Decimal] = Field(default=None, alias="exitPrice", gt=0)
    notes: Optional[str] = None

    @field_validator("entry_price", "margin_rate", "exit_price", mode="before")
    @classmethod
    def _decimal(cls, value: Any) -> Any:
        return to_decimal(value)

    @field_validator("entry_date", "exit_date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> Any:
        return parse_flexible_date(value)

    def to_draft(self) -> TradeDraft:
        # Exit facts only count when both are present
        has_exit = self.exit_date is not None and self.exit_price is not None
        return TradeDraft(
            symbol=self.symbol.upper(),
            entry_price=self.entry_price,
            quantity=self.quantity,
            margin_rate=self.margin_rate,
            entry_date=self.entry_date,
            exit_price=self.exit_price if has_exit else None,
            exit_date=self.exit_date if has_exit else None,
            notes=self.notes or None,
        )


def parse_import_row(raw: Mapping[str, Any]) -> TradeDraft:
    """
    Validate a raw row and convert it to a TradeDraft.

    Raises:
        ValidationError: With the first offending field
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("row", f"expected an object, got {type(raw).__name__}")
    try:
        return ImportRow.model_validate(dict(raw)).to_draft()
    except SchemaError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "row"
        raise ValidationError(field, first.get("msg", "invalid value")) from e
