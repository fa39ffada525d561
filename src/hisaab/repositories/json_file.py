"""JSON file invoice repository: one document per user."""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from hisaab.exceptions import PersistenceError
from hisaab.models import Invoice
from hisaab.repositories.base import InvoiceRepository

logger = logging.getLogger(__name__)

_invoice_list = TypeAdapter(list[Invoice])


class JsonFileInvoiceRepository(InvoiceRepository):
    """Stores each user's invoices as a JSON array under ``data_dir``."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self._lock = threading.Lock()

    def path_for(self, username: str) -> Path:
        return self.data_dir / f"hisaab_data_{username}.json"

    def _read_locked(self, username: str) -> list[Invoice]:
        path = self.path_for(username)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise PersistenceError(
                f"Could not read invoices for {username}: {exc}",
                details={"path": str(path)},
            ) from exc

        try:
            return _invoice_list.validate_json(raw)
        except ValidationError as exc:
            raise PersistenceError(
                f"Invoice store for {username} is corrupt",
                details={"path": str(path), "errors": exc.error_count()},
            ) from exc

    def _write_locked(self, username: str, invoices: list[Invoice]) -> None:
        path = self.path_for(username)
        payload = _invoice_list.dump_json(invoices, by_alias=True, indent=2)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=path.name, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(
                f"Could not write invoices for {username}: {exc}",
                details={"path": str(path)},
            ) from exc

    def load(self, username: str, invoice_id: str) -> Optional[Invoice]:
        with self._lock:
            for invoice in self._read_locked(username):
                if invoice.id == invoice_id:
                    return invoice
            return None

    def save(self, username: str, invoice: Invoice) -> None:
        with self._lock:
            invoices = self._read_locked(username)
            for idx, existing in enumerate(invoices):
                if existing.id == invoice.id:
                    invoices[idx] = invoice
                    break
            else:
                invoices.append(invoice)
            self._write_locked(username, invoices)
            logger.debug("Wrote %d invoices to %s", len(invoices), self.path_for(username))

    def list(self, username: str) -> list[Invoice]:
        with self._lock:
            return self._read_locked(username)

    def remove(self, username: str, invoice_id: str) -> bool:
        with self._lock:
            invoices = self._read_locked(username)
            remaining = [inv for inv in invoices if inv.id != invoice_id]
            if len(remaining) == len(invoices):
                return False
            self._write_locked(username, remaining)
            return True
