"""Pydantic data models for invoices, line items and payments."""

import datetime as dt
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class InvoiceStatus(str, Enum):
    """Payment status, toggled by the user independently of the balance."""

    PENDING = "Pending"
    PAID = "Paid"


class _Record(BaseModel):
    """Immutable record serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class LineItem(_Record):
    """Invoice line item with raw inputs and derived pricing fields."""

    id: str = Field(..., min_length=1, description="Stable row identifier")
    name: str = Field(default="", description="Free-text item label")
    quantity: float = Field(default=0.0, description="Quantity ordered")
    rate: float = Field(default=0.0, description="Nominal unit price")
    discount_percent: float = Field(
        default=0.0,
        description="Signed adjustment; negative discounts, positive surcharges, 0 disables",
    )
    trade_price: float = Field(default=0.0, description="Rate less the 14.5% trade margin")
    effective_unit_price: float = Field(
        default=0.0, description="Final per-unit price after margins and discount"
    )
    line_total: float = Field(default=0.0, description="Effective unit price x quantity")


class PaymentEntry(_Record):
    """Payment recorded against an invoice."""

    id: str = Field(..., min_length=1)
    narration: str = ""
    amount: float = 0.0


class InvoiceTotals(_Record):
    """Invoice-level figures derived from items and payments."""

    grand_total: float
    total_paid: float
    remaining_balance: float


class Invoice(_Record):
    """Whole-invoice snapshot handed to persistence."""

    id: str = Field(..., min_length=1)
    name: str
    date: dt.date
    items: Tuple[LineItem, ...] = Field(..., min_length=1)
    payments: Tuple[PaymentEntry, ...] = ()
    status: InvoiceStatus = InvoiceStatus.PENDING
    total_amount: float = Field(..., description="Sum of line totals")
    remaining_balance: float = Field(..., description="Total amount less payments")
    created_at: int = Field(..., description="Epoch milliseconds of first save")


def _coerce(value: Any) -> float:
    from hisaab.pricing import coerce_number

    return coerce_number(value)


class LineItemInput(_Record):
    """Raw line item fields accepted from outer surfaces."""

    id: Optional[str] = None
    name: str = ""
    quantity: float = 0.0
    rate: float = 0.0
    discount_percent: float = 0.0

    @field_validator("quantity", "rate", "discount_percent", mode="before")
    @classmethod
    def coerce_numeric(cls, value: Any) -> float:
        """Blank or non-numeric entries become 0 instead of failing."""
        return _coerce(value)


class PaymentInput(_Record):
    """Raw payment fields accepted from outer surfaces."""

    id: Optional[str] = None
    narration: str = ""
    amount: float = 0.0

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> float:
        return _coerce(value)


class InvoiceUpsertRequest(_Record):
    """Request payload for creating or replacing an invoice."""

    name: str = ""
    date: Optional[dt.date] = None
    status: InvoiceStatus = InvoiceStatus.PENDING
    items: List[LineItemInput] = Field(default_factory=list)
    payments: List[PaymentInput] = Field(default_factory=list)


class PricingPreviewRequest(_Record):
    """Request payload for one-off line pricing."""

    quantity: float = 0.0
    rate: float = 0.0
    discount_percent: float = 0.0

    @field_validator("quantity", "rate", "discount_percent", mode="before")
    @classmethod
    def coerce_numeric(cls, value: Any) -> float:
        return _coerce(value)


class PricingPreviewResponse(_Record):
    """Derived pricing fields for a single line."""

    trade_price: float
    effective_unit_price: float
    line_total: float


class InvoiceDetailResponse(_Record):
    """Invoice snapshot together with freshly computed totals."""

    invoice: Invoice
    totals: InvoiceTotals
    currency: str = Field(description="ISO 4217 code amounts are expressed in")
