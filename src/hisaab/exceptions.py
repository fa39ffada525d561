"""Domain exceptions with stable error payload fields."""

from typing import Any, Dict, Optional


class HisaabError(Exception):
    """Error that maps to a stable API error payload."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class ItemIndexError(HisaabError, IndexError):
    """Row index outside the current item or payment collection."""

    def __init__(self, collection: str, index: int, size: int) -> None:
        super().__init__(
            "ROW_NOT_FOUND",
            f"{collection} index {index} out of range (size {size})",
            status_code=404,
            details={"collection": collection, "index": index, "size": size},
        )


class UnknownFieldError(HisaabError):
    """Field is not a user-editable raw field."""

    def __init__(self, collection: str, field: str) -> None:
        super().__init__(
            "UNKNOWN_FIELD",
            f"{field!r} is not an editable {collection} field",
            details={"collection": collection, "field": field},
        )


class InvoiceNotFoundError(HisaabError):
    """No invoice stored under the requested id for this user."""

    def __init__(self, invoice_id: str) -> None:
        super().__init__(
            "INVOICE_NOT_FOUND",
            f"Invoice not found: {invoice_id}",
            status_code=404,
            details={"invoice_id": invoice_id},
        )


class MissingInvoiceNameError(HisaabError):
    """Invoices cannot be saved without a name."""

    def __init__(self) -> None:
        super().__init__("MISSING_INVOICE_NAME", "Please enter an invoice name")


class PersistenceError(HisaabError):
    """Storage backend failed to read or write invoices."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            "PERSISTENCE_FAILED",
            message,
            status_code=503,
            details=details,
        )
