"""Repository interface for invoice persistence."""

from __future__ import annotations

from typing import Optional, Protocol

from hisaab.models import Invoice


class InvoiceRepository(Protocol):
    """Key-value invoice store partitioned by username."""

    def load(self, username: str, invoice_id: str) -> Optional[Invoice]:
        ...

    def save(self, username: str, invoice: Invoice) -> None:
        """Insert or replace by ``invoice.id``; raise PersistenceError on failure."""
        ...

    def list(self, username: str) -> list[Invoice]:
        ...

    def remove(self, username: str, invoice_id: str) -> bool:
        ...
