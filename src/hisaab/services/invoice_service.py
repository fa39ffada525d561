"""Editing-session orchestration between the invoice editor and storage."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi.concurrency import run_in_threadpool

from hisaab.config import HisaabConfig
from hisaab.editor import InvoiceEditor
from hisaab.exceptions import InvoiceNotFoundError, MissingInvoiceNameError, PersistenceError
from hisaab.ids import IdGenerator
from hisaab.models import Invoice, InvoiceStatus, InvoiceUpsertRequest, LineItemInput
from hisaab.repositories.base import InvoiceRepository

logger = logging.getLogger(__name__)


def filter_invoices(invoices: list[Invoice], search: Optional[str]) -> list[Invoice]:
    """Keep invoices whose name or ISO date contains the search term."""
    if not search:
        return list(invoices)
    term = search.lower()
    return [
        inv
        for inv in invoices
        if term in inv.name.lower() or search in inv.date.isoformat()
    ]


class InvoiceService:
    """Opens, saves, lists and removes invoices for a user."""

    def __init__(
        self,
        config: HisaabConfig,
        repository: InvoiceRepository,
        *,
        id_generator: Optional[IdGenerator] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.config = config
        self.repository = repository
        self._id_generator = id_generator
        self._clock = clock

    def new_session(self) -> InvoiceEditor:
        """Start a new invoice seeded with one blank row."""
        return InvoiceEditor(
            id_generator=self._id_generator,
            negative_inputs=self.config.negative_inputs,
            clock=self._clock,
        )

    def get_invoice(self, username: str, invoice_id: str) -> Invoice:
        invoice = self.repository.load(username, invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def open_session(
        self, username: str, invoice_id: str, *, fallback_to_new: bool = False
    ) -> InvoiceEditor:
        """Resume editing a stored invoice, optionally starting fresh if it is missing."""
        try:
            invoice = self.get_invoice(username, invoice_id)
        except InvoiceNotFoundError:
            if not fallback_to_new:
                raise
            logger.info("Invoice %s not found for %s, starting new", invoice_id, username)
            return self.new_session()

        return InvoiceEditor.from_invoice(
            invoice,
            id_generator=self._id_generator,
            negative_inputs=self.config.negative_inputs,
            clock=self._clock,
        )

    async def save_session(self, username: str, editor: InvoiceEditor) -> Invoice:
        """
        Persist the editor's full state as one snapshot.

        The editor only adopts the snapshot id and moves to SAVED after the
        repository write succeeds, so a failed save can simply be retried.
        """
        if not editor.name.strip():
            raise MissingInvoiceNameError()

        snapshot = editor.to_snapshot()
        try:
            await run_in_threadpool(self.repository.save, username, snapshot)
        except PersistenceError:
            logger.warning("Saving invoice %s for %s failed", snapshot.id, username)
            raise
        except OSError as exc:
            logger.warning("Saving invoice %s for %s failed: %s", snapshot.id, username, exc)
            raise PersistenceError(f"Could not save invoice: {exc}") from exc

        editor.mark_saved(snapshot)
        logger.info("Saved invoice %s (%s) for %s", snapshot.id, snapshot.name, username)
        return snapshot

    def list_invoices(self, username: str, search: Optional[str] = None) -> list[Invoice]:
        """Invoices for the user, newest date first, optionally filtered."""
        invoices = sorted(
            self.repository.list(username), key=lambda inv: inv.date, reverse=True
        )
        return filter_invoices(invoices, search)

    def toggle_status(self, username: str, invoice_id: str) -> Invoice:
        """Flip Pending/Paid on a stored invoice and write it back."""
        invoice = self.get_invoice(username, invoice_id)
        status = (
            InvoiceStatus.PENDING if invoice.status == InvoiceStatus.PAID else InvoiceStatus.PAID
        )
        updated = invoice.model_copy(update={"status": status})
        self.repository.save(username, updated)
        logger.info("Invoice %s marked %s", invoice_id, status.value)
        return updated

    def remove_invoice(self, username: str, invoice_id: str) -> None:
        if not self.repository.remove(username, invoice_id):
            raise InvoiceNotFoundError(invoice_id)
        logger.info("Removed invoice %s for %s", invoice_id, username)


def apply_upsert(editor: InvoiceEditor, payload: InvoiceUpsertRequest) -> InvoiceEditor:
    """
    Replay a raw invoice payload onto an editor through its row operations.

    Rows are matched by position: existing row ids are kept, extra rows are
    added and surplus rows removed. Derived fields in the payload are never
    trusted; every line is re-derived from its raw fields.
    """
    editor.set_name(payload.name)
    if payload.date is not None:
        editor.set_date(payload.date)
    editor.set_status(payload.status)

    rows = payload.items or [LineItemInput()]
    while len(editor.items) < len(rows):
        editor.add_item()
    while len(editor.items) > len(rows):
        editor.delete_item(len(editor.items) - 1)
    for idx, row in enumerate(rows):
        editor.update_item(idx, "name", row.name)
        editor.update_item(idx, "quantity", row.quantity)
        editor.update_item(idx, "rate", row.rate)
        editor.update_item(idx, "discount_percent", row.discount_percent)

    while len(editor.payments) < len(payload.payments):
        editor.add_payment()
    while len(editor.payments) > len(payload.payments):
        editor.delete_payment(len(editor.payments) - 1)
    for idx, payment in enumerate(payload.payments):
        editor.update_payment(idx, "narration", payment.narration)
        editor.update_payment(idx, "amount", payment.amount)

    return editor
