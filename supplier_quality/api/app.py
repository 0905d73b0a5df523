"""
supplier_quality/api/app.py

Read-only HTTP surface over the catalog.

Every handler reads from the injected CatalogProvider; nothing here builds
or mutates catalog data. JSON bodies use the camelCase field aliases the
dashboard front end expects.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status

from supplier_quality import __version__
from supplier_quality.models.schemas import BaseModel, ProductRecord
from supplier_quality.pipeline.catalog_builder import filter_evidence, program_breakdown
from supplier_quality.pipeline.provider import CatalogProvider
from supplier_quality.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])
health_router = APIRouter(tags=["health"])

SKU_NOT_FOUND = "SKU not found"


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_provider(request: Request) -> CatalogProvider:
    """The provider the application was created with."""
    return request.app.state.provider


def get_product_or_404(
    product_id: str,
    provider: CatalogProvider = Depends(get_provider),
) -> ProductRecord:
    product = provider.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=SKU_NOT_FOUND)
    return product


# ---------------------------------------------------------------------------
# Catalog endpoints
# ---------------------------------------------------------------------------


@router.get("/skus")
def list_skus(provider: CatalogProvider = Depends(get_provider)) -> dict[str, Any]:
    """All catalog entries, critical first."""
    return {"skus": [_dump(p) for p in provider.list_products()]}


@router.get("/skus/{product_id}")
def get_sku(product: ProductRecord = Depends(get_product_or_404)) -> dict[str, Any]:
    """One catalog entry, matched by id or SKU."""
    return {"sku": _dump(product)}


@router.get("/skus/{product_id}/evidence")
def get_sku_evidence(
    product: ProductRecord = Depends(get_product_or_404),
    program: Optional[str] = Query(default=None),
    severity: Optional[str] = Query(default=None),
) -> dict[str, Any]:
    """Evidence of one product, optionally narrowed by program and severity."""
    items = filter_evidence(product, program=program, severity=severity)
    return {
        "evidence": [_dump(item) for item in items],
        "programs": program_breakdown(product),
        "total": len(product.evidence),
    }


@router.get("/kpis")
def get_kpis(provider: CatalogProvider = Depends(get_provider)) -> dict[str, Any]:
    return {"kpis": _dump(provider.get_kpis())}


@router.get("/top-issues")
def get_top_issues(
    limit: int = Query(default=5, ge=1, le=100),
    provider: CatalogProvider = Depends(get_provider),
) -> dict[str, Any]:
    """Products with the most evidence."""
    return {"issues": [_dump(issue) for issue in provider.top_issues(limit)]}


@router.get("/high-risk")
def get_high_risk(
    limit: int = Query(default=15, ge=1, le=100),
    provider: CatalogProvider = Depends(get_provider),
) -> dict[str, Any]:
    """Critical products by incident rate."""
    return {"skus": [_dump(p) for p in provider.high_risk_products(limit)]}


@health_router.get("/health")
def health(provider: CatalogProvider = Depends(get_provider)) -> dict[str, Any]:
    snapshot = provider.snapshot
    return {
        "status": "degraded" if snapshot.degraded else "ok",
        "version": __version__,
        "products": len(snapshot.products),
        "source": snapshot.source,
        "builtAt": snapshot.built_at.isoformat(),
        "ingestion": snapshot.ingestion.model_dump(),
    }


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(provider: Optional[CatalogProvider] = None) -> FastAPI:
    """
    Build the FastAPI application around a catalog provider.

    A provider over the configured source file is created when none is given.
    """
    app = FastAPI(title="Supplier Quality Insights", version=__version__)
    app.state.provider = provider or CatalogProvider()
    app.include_router(router)
    app.include_router(health_router)
    logger.debug("API application created")
    return app
