"""FastAPI application exposing invoice editing and storage."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hisaab import __version__
from hisaab.config import HisaabConfig, get_config
from hisaab.dependencies import (
    AppResources,
    get_app_config,
    get_current_username,
    get_invoice_service,
)
from hisaab.editor import InvoiceEditor
from hisaab.exceptions import HisaabError
from hisaab.models import (
    Invoice,
    InvoiceDetailResponse,
    InvoiceUpsertRequest,
    PricingPreviewRequest,
    PricingPreviewResponse,
)
from hisaab.pricing import compute_pricing
from hisaab.repositories import create_repository
from hisaab.services.invoice_service import InvoiceService, apply_upsert

logger = logging.getLogger(__name__)


def _detail(
    config: HisaabConfig, editor: InvoiceEditor, invoice: Invoice
) -> InvoiceDetailResponse:
    return InvoiceDetailResponse(
        invoice=invoice, totals=editor.totals(), currency=config.currency
    )


def create_app(config: Optional[HisaabConfig] = None) -> FastAPI:
    """Build the API app; resources are created in the lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app_config = config or get_config()
        app.state.hisaab_resources = AppResources(
            config=app_config,
            repository=create_repository(app_config),
        )
        logger.info("Invoice API started with %s storage", app_config.storage_backend)
        yield

    app = FastAPI(
        title="Hisaab Invoice Service",
        description="Compose invoices with trade-price derivation and payment tracking",
        version=__version__,
        lifespan=lifespan,
    )

    origins = (config or HisaabConfig()).get_allowed_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(HisaabError)
    async def hisaab_error_handler(request: Request, exc: HisaabError) -> JSONResponse:
        """Map domain errors to stable API error payload."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.message,
                    "details": exc.details,
                }
            },
        )

    @app.get("/health")
    async def health_check() -> Dict[str, Any]:
        """Health check endpoint for container orchestration."""
        return {
            "status": "healthy",
            "service": "hisaab",
            "version": __version__,
        }

    @app.post("/pricing/preview", response_model=PricingPreviewResponse)
    async def preview_pricing(
        payload: PricingPreviewRequest,
        config: HisaabConfig = Depends(get_app_config),
    ) -> PricingPreviewResponse:
        """Derive pricing for one line without touching any invoice."""
        pricing = compute_pricing(
            quantity=payload.quantity,
            rate=payload.rate,
            discount_percent=payload.discount_percent,
            negative_inputs=config.negative_inputs,
        )
        return PricingPreviewResponse(**pricing.__dict__)

    # Repository calls block on file I/O; plain `def` routes run in the threadpool.
    @app.get("/invoices", response_model=List[Invoice])
    def list_invoices(
        search: Optional[str] = None,
        username: str = Depends(get_current_username),
        service: InvoiceService = Depends(get_invoice_service),
    ) -> List[Invoice]:
        """List the user's invoices, newest first."""
        return service.list_invoices(username, search)

    @app.get("/invoices/{invoice_id}", response_model=InvoiceDetailResponse)
    def get_invoice(
        invoice_id: str,
        username: str = Depends(get_current_username),
        service: InvoiceService = Depends(get_invoice_service),
    ) -> InvoiceDetailResponse:
        invoice = service.get_invoice(username, invoice_id)
        return _detail(service.config, InvoiceEditor.from_invoice(invoice), invoice)

    @app.post(
        "/invoices",
        response_model=InvoiceDetailResponse,
        status_code=status.HTTP_201_CREATED,
        responses={400: {"description": "Missing invoice name"}},
    )
    async def create_invoice(
        payload: InvoiceUpsertRequest,
        username: str = Depends(get_current_username),
        service: InvoiceService = Depends(get_invoice_service),
    ) -> InvoiceDetailResponse:
        """Create an invoice from raw rows; pricing is derived server-side."""
        editor = apply_upsert(service.new_session(), payload)
        invoice = await service.save_session(username, editor)
        return _detail(service.config, editor, invoice)

    @app.put(
        "/invoices/{invoice_id}",
        response_model=InvoiceDetailResponse,
        responses={404: {"description": "Invoice not found"}},
    )
    async def replace_invoice(
        invoice_id: str,
        payload: InvoiceUpsertRequest,
        username: str = Depends(get_current_username),
        service: InvoiceService = Depends(get_invoice_service),
    ) -> InvoiceDetailResponse:
        session = await run_in_threadpool(service.open_session, username, invoice_id)
        editor = apply_upsert(session, payload)
        invoice = await service.save_session(username, editor)
        return _detail(service.config, editor, invoice)

    @app.post("/invoices/{invoice_id}/toggle-status", response_model=Invoice)
    def toggle_invoice_status(
        invoice_id: str,
        username: str = Depends(get_current_username),
        service: InvoiceService = Depends(get_invoice_service),
    ) -> Invoice:
        return service.toggle_status(username, invoice_id)

    @app.delete("/invoices/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_invoice(
        invoice_id: str,
        username: str = Depends(get_current_username),
        service: InvoiceService = Depends(get_invoice_service),
    ) -> Response:
        service.remove_invoice(username, invoice_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


app = create_app()
