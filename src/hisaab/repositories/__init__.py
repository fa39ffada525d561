"""Invoice persistence backends."""

from typing import TYPE_CHECKING

from hisaab.repositories.base import InvoiceRepository
from hisaab.repositories.json_file import JsonFileInvoiceRepository
from hisaab.repositories.memory import InMemoryInvoiceRepository

if TYPE_CHECKING:
    from hisaab.config import HisaabConfig

__all__ = [
    "InMemoryInvoiceRepository",
    "InvoiceRepository",
    "JsonFileInvoiceRepository",
    "create_repository",
]


def create_repository(config: "HisaabConfig") -> InvoiceRepository:
    """Build the storage backend selected in configuration."""
    if config.storage_backend == "memory":
        return InMemoryInvoiceRepository()
    return JsonFileInvoiceRepository(config.data_dir)
