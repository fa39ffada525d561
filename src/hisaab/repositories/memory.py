"""In-memory invoice repository for tests and throwaway sessions."""

from __future__ import annotations

import threading
from typing import Optional

from hisaab.models import Invoice
from hisaab.repositories.base import InvoiceRepository


class InMemoryInvoiceRepository(InvoiceRepository):
    """Thread-safe in-memory storage."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        """Reset all in-memory state (used by tests)."""
        with self._lock:
            self._invoices: dict[str, dict[str, Invoice]] = {}

    def load(self, username: str, invoice_id: str) -> Optional[Invoice]:
        with self._lock:
            return self._invoices.get(username, {}).get(invoice_id)

    def save(self, username: str, invoice: Invoice) -> None:
        with self._lock:
            self._invoices.setdefault(username, {})[invoice.id] = invoice

    def list(self, username: str) -> list[Invoice]:
        with self._lock:
            return list(self._invoices.get(username, {}).values())

    def remove(self, username: str, invoice_id: str) -> bool:
        with self._lock:
            return self._invoices.get(username, {}).pop(invoice_id, None) is not None
