"""Invoice aggregator: line item and payment lifecycle plus totals."""

from __future__ import annotations

import datetime as dt
import logging
import time
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Tuple, Union

from hisaab.exceptions import ItemIndexError, UnknownFieldError
from hisaab.ids import IdGenerator, RandomIdGenerator
from hisaab.models import Invoice, InvoiceStatus, InvoiceTotals, LineItem, PaymentEntry
from hisaab.pricing import NegativeInputPolicy, coerce_number, derive_item, sum_amounts

logger = logging.getLogger(__name__)

ITEM_NUMERIC_FIELDS = frozenset({"quantity", "rate", "discount_percent"})
ITEM_FIELDS = ITEM_NUMERIC_FIELDS | {"name"}
PAYMENT_FIELDS = frozenset({"narration", "amount"})

_FIELD_ALIASES = {
    "discountPercent": "discount_percent",
    "discount": "discount_percent",
    "qty": "quantity",
}


class EditorState(str, Enum):
    """Editing session lifecycle."""

    NEW = "new"
    EDITING = "editing"
    SAVED = "saved"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _resolve_field(field: str, allowed: frozenset, collection: str) -> str:
    name = _FIELD_ALIASES.get(field, field)
    if name not in allowed:
        raise UnknownFieldError(collection, field)
    return name


def _check_index(collection: str, index: int, size: int) -> None:
    if not 0 <= index < size:
        raise ItemIndexError(collection, index, size)


class InvoiceEditor:
    """
    Owns one invoice's items and payments for a single editing session.

    Every mutating operation builds a new tuple and swaps it in, returning
    the updated collection. Derived line fields are only ever produced by
    ``derive_item``, called whenever a numeric raw field changes.
    """

    def __init__(
        self,
        *,
        id_generator: Optional[IdGenerator] = None,
        negative_inputs: NegativeInputPolicy = NegativeInputPolicy.PROPAGATE,
        clock: Optional[Callable[[], int]] = None,
        items: Sequence[LineItem] = (),
    ) -> None:
        self._ids = id_generator or RandomIdGenerator()
        self._negative_inputs = negative_inputs
        self._clock = clock or _now_ms

        self.invoice_id: Optional[str] = None
        self.name = ""
        self.date = dt.date.today()
        self.status = InvoiceStatus.PENDING
        self.created_at: Optional[int] = None
        self.items: Tuple[LineItem, ...] = tuple(items) or (self._blank_item(),)
        self.payments: Tuple[PaymentEntry, ...] = ()
        self.state = EditorState.NEW

    @classmethod
    def from_invoice(
        cls,
        invoice: Invoice,
        *,
        id_generator: Optional[IdGenerator] = None,
        negative_inputs: NegativeInputPolicy = NegativeInputPolicy.PROPAGATE,
        clock: Optional[Callable[[], int]] = None,
    ) -> "InvoiceEditor":
        """Resume editing a persisted snapshot."""
        editor = cls(
            id_generator=id_generator,
            negative_inputs=negative_inputs,
            clock=clock,
            items=invoice.items,
        )
        editor.invoice_id = invoice.id
        editor.name = invoice.name
        editor.date = invoice.date
        editor.status = invoice.status
        editor.created_at = invoice.created_at
        editor.payments = tuple(invoice.payments)
        editor.state = EditorState.SAVED
        return editor

    def _touch(self) -> None:
        self.state = EditorState.EDITING

    def _blank_item(self) -> LineItem:
        return LineItem(id=self._ids.new_id())

    # Line items

    def add_item(self) -> Tuple[LineItem, ...]:
        """Append a blank line item."""
        self.items = self.items + (self._blank_item(),)
        self._touch()
        return self.items

    def update_item(self, index: int, field: str, value: Any) -> Tuple[LineItem, ...]:
        """Set a raw field on one item, re-deriving pricing for numeric fields."""
        name = _resolve_field(field, ITEM_FIELDS, "item")
        _check_index("item", index, len(self.items))

        current = self.items[index]
        if name in ITEM_NUMERIC_FIELDS:
            updated = derive_item(
                current.model_copy(update={name: coerce_number(value)}),
                negative_inputs=self._negative_inputs,
            )
        else:
            updated = current.model_copy(update={name: "" if value is None else str(value)})

        self.items = self.items[:index] + (updated,) + self.items[index + 1 :]
        self._touch()
        return self.items

    def delete_item(self, index: int) -> Tuple[LineItem, ...]:
        """Remove an item; the last remaining item is never removed."""
        _check_index("item", index, len(self.items))
        if len(self.items) == 1:
            logger.debug("Refusing to delete the last line item")
            return self.items

        self.items = self.items[:index] + self.items[index + 1 :]
        self._touch()
        return self.items

    def duplicate_item(self, index: int) -> Tuple[LineItem, ...]:
        """Insert a copy of an item, with a new id, right after it."""
        _check_index("item", index, len(self.items))
        clone = self.items[index].model_copy(update={"id": self._ids.new_id()})
        self.items = self.items[: index + 1] + (clone,) + self.items[index + 1 :]
        self._touch()
        return self.items

    # Payments

    def add_payment(self) -> Tuple[PaymentEntry, ...]:
        self.payments = self.payments + (PaymentEntry(id=self._ids.new_id()),)
        self._touch()
        return self.payments

    def update_payment(self, index: int, field: str, value: Any) -> Tuple[PaymentEntry, ...]:
        """Set a payment field; amounts are stored as entered, blanks as 0."""
        name = _resolve_field(field, PAYMENT_FIELDS, "payment")
        _check_index("payment", index, len(self.payments))

        if name == "amount":
            value = coerce_number(value)
        else:
            value = "" if value is None else str(value)

        updated = self.payments[index].model_copy(update={name: value})
        self.payments = self.payments[:index] + (updated,) + self.payments[index + 1 :]
        self._touch()
        return self.payments

    def delete_payment(self, index: int) -> Tuple[PaymentEntry, ...]:
        _check_index("payment", index, len(self.payments))
        self.payments = self.payments[:index] + self.payments[index + 1 :]
        self._touch()
        return self.payments

    # Metadata

    def set_name(self, name: str) -> None:
        self.name = name
        self._touch()

    def set_date(self, value: Union[dt.date, str]) -> None:
        self.date = dt.date.fromisoformat(value) if isinstance(value, str) else value
        self._touch()

    def set_status(self, status: InvoiceStatus) -> None:
        self.status = InvoiceStatus(status)
        self._touch()

    def toggle_status(self) -> InvoiceStatus:
        """Flip between Pending and Paid."""
        self.set_status(
            InvoiceStatus.PENDING if self.status == InvoiceStatus.PAID else InvoiceStatus.PAID
        )
        return self.status

    # Totals and snapshots

    def totals(self) -> InvoiceTotals:
        """Compute grand total, amount paid and remaining balance."""
        grand_total = sum_amounts(item.line_total for item in self.items)
        total_paid = sum_amounts(payment.amount for payment in self.payments)
        return InvoiceTotals(
            grand_total=grand_total,
            total_paid=total_paid,
            remaining_balance=sum_amounts((grand_total, -total_paid)),
        )

    def to_snapshot(
        self,
        invoice_id: Optional[str] = None,
        name: Optional[str] = None,
        date: Optional[dt.date] = None,
        status: Optional[InvoiceStatus] = None,
    ) -> Invoice:
        """
        Assemble the full persisted record.

        Reuses the given or already assigned id, otherwise mints one, and
        stamps ``created_at`` only on the first snapshot. The editor itself
        is left untouched; call :meth:`mark_saved` once persistence succeeds.
        """
        totals = self.totals()
        return Invoice(
            id=invoice_id or self.invoice_id or self._ids.new_id(),
            name=self.name if name is None else name,
            date=self.date if date is None else date,
            items=self.items,
            payments=self.payments,
            status=self.status if status is None else status,
            total_amount=totals.grand_total,
            remaining_balance=totals.remaining_balance,
            created_at=self.created_at if self.created_at is not None else self._clock(),
        )

    def mark_saved(self, invoice: Invoice) -> None:
        """Adopt the identity of a successfully persisted snapshot."""
        self.invoice_id = invoice.id
        self.created_at = invoice.created_at
        self.state = EditorState.SAVED
