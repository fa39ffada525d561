"""Shared FastAPI app resource container and provider dependencies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, cast

from fastapi import Depends, Header, HTTPException, Request, status

from hisaab.config import HisaabConfig
from hisaab.repositories.base import InvoiceRepository
from hisaab.services.invoice_service import InvoiceService


@dataclass
class AppResources:
    """App-scoped resources initialized during FastAPI lifespan."""

    config: HisaabConfig
    repository: InvoiceRepository


def get_app_resources(request: Request) -> AppResources:
    """Return initialized app resources from state."""
    resources = getattr(request.app.state, "hisaab_resources", None)
    if resources is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Application resources are not initialized",
        )
    return cast(AppResources, resources)


def get_app_config(resources: AppResources = Depends(get_app_resources)) -> HisaabConfig:
    """Get app-scoped config instance."""
    return resources.config


def get_repository(
    resources: AppResources = Depends(get_app_resources),
) -> InvoiceRepository:
    """Get app-scoped invoice repository."""
    return resources.repository


def get_invoice_service(
    config: HisaabConfig = Depends(get_app_config),
    repository: InvoiceRepository = Depends(get_repository),
) -> InvoiceService:
    """Get invoice service instance (per-request)."""
    return InvoiceService(config, repository)


def get_current_username(
    x_username: Optional[str] = Header(default=None),
    config: HisaabConfig = Depends(get_app_config),
) -> str:
    """Mock login: trust the X-Username header, else the configured user."""
    username = (x_username or config.username).strip()
    if not username or any(ch in username for ch in "/\\"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username",
        )
    return username
