"""Shared test fixtures."""

from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from hisaab.api import create_app
from hisaab.config import HisaabConfig, reload_config
from hisaab.dependencies import get_repository
from hisaab.editor import InvoiceEditor
from hisaab.ids import SequentialIdGenerator
from hisaab.repositories import InMemoryInvoiceRepository
from hisaab.services.invoice_service import InvoiceService

FIXED_NOW_MS = 1_760_000_000_000


@pytest.fixture(autouse=True)
def isolated_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Any
) -> Generator[None, None, None]:
    """Point config at a per-test data dir and reset the cached instance."""
    for name in ("USERNAME", "STORAGE_BACKEND", "NEGATIVE_INPUTS", "CURRENCY", "CURRENCY_SYMBOL"):
        monkeypatch.delenv(f"HISAAB_{name}", raising=False)
    monkeypatch.setenv("HISAAB_DATA_DIR", str(tmp_path / "data"))
    reload_config()
    yield
    monkeypatch.undo()
    reload_config()


@pytest.fixture
def ids() -> SequentialIdGenerator:
    return SequentialIdGenerator("id")


@pytest.fixture
def editor(ids: SequentialIdGenerator) -> InvoiceEditor:
    """Fresh editor with deterministic ids and clock."""
    return InvoiceEditor(id_generator=ids, clock=lambda: FIXED_NOW_MS)


@pytest.fixture
def test_config(tmp_path: Any) -> HisaabConfig:
    """Provide a test-owned config instance."""
    return HisaabConfig(
        _env_file=None,
        username="tester",
        data_dir=tmp_path / "data",
        storage_backend="memory",
    )


@pytest.fixture
def memory_repository() -> InMemoryInvoiceRepository:
    return InMemoryInvoiceRepository()


@pytest.fixture
def service(
    test_config: HisaabConfig,
    memory_repository: InMemoryInvoiceRepository,
    ids: SequentialIdGenerator,
) -> InvoiceService:
    return InvoiceService(
        test_config,
        memory_repository,
        id_generator=ids,
        clock=lambda: FIXED_NOW_MS,
    )


@pytest.fixture
def api_test_app(
    test_config: HisaabConfig, memory_repository: InMemoryInvoiceRepository
) -> Generator[Any, None, None]:
    """Create a fresh FastAPI app backed by a test-owned repository."""
    app = create_app(test_config)
    app.dependency_overrides[get_repository] = lambda: memory_repository
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def api_test_client(api_test_app: Any) -> Generator[TestClient, None, None]:
    """Create a TestClient for the overridden API app."""
    with TestClient(api_test_app) as client:
        yield client
