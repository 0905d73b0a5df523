"""
Read access to the built catalog.

``CatalogProvider`` owns one lazily built, immutable ``CatalogSnapshot``.
It is injected into the CLI and the HTTP app rather than kept in a module
global, so tests construct their own provider over a fixture file.
"""

from pathlib import Path
from typing import Optional, Union

from supplier_quality.config.settings import Settings, get_settings
from supplier_quality.models.schemas import (
    CatalogKPIs,
    CatalogSnapshot,
    ProductRecord,
    Severity,
    TopIssue,
)
from supplier_quality.pipeline.catalog_builder import CatalogBuilder
from supplier_quality.pipeline.orchestrator import build_catalog_snapshot
from supplier_quality.utils.logger import get_logger

logger = get_logger(__name__)

TOP_ISSUES_LIMIT = 5
HIGH_RISK_LIMIT = 15
TOP_ISSUE_DEFECT_TAGS = 3
HIGH_SEVERITY_RATE = 5.0


class CatalogProvider:
    """
    Memoized catalog with lookup helpers.

    The snapshot is built on first access and then only read. Building is
    deterministic, so two racing first callers at worst build the same
    catalog twice; the attribute is only ever assigned a finished snapshot.

    Example:
        >>> provider = CatalogProvider(settings)
        >>> provider.get_product("P1").name
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        builder: Optional[CatalogBuilder] = None,
        source: Optional[Union[str, Path]] = None,
    ):
        self.settings = settings or get_settings()
        self.builder = builder
        self.source = source
        self._snapshot: Optional[CatalogSnapshot] = None

    @property
    def snapshot(self) -> CatalogSnapshot:
        """The catalog snapshot, built on first access."""
        if self._snapshot is None:
            self._snapshot = build_catalog_snapshot(
                source=self.source,
                settings=self.settings,
                builder=self.builder,
            )
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def reset(self) -> None:
        """Drop the memoized snapshot; the next read rebuilds it."""
        if self._snapshot is not None:
            logger.debug("Catalog snapshot reset", products=len(self._snapshot.products))
        self._snapshot = None

    # -------------------------------------------------------------------------
    # Read API
    # -------------------------------------------------------------------------

    def list_products(self) -> list[ProductRecord]:
        """All catalog entries in catalog order."""
        return list(self.snapshot.products)

    def get_product(self, product_id: str) -> Optional[ProductRecord]:
        """Look up by catalog id or SKU; ``None`` when absent."""
        return self.snapshot.find(product_id)

    def get_kpis(self) -> CatalogKPIs:
        return self.snapshot.kpis

    # -------------------------------------------------------------------------
    # Dashboard views
    # -------------------------------------------------------------------------

    def top_issues(self, limit: int = TOP_ISSUES_LIMIT) -> list[TopIssue]:
        """
        Products with the most evidence, for the executive summary.

        Ties keep catalog order.
        """
        ranked = sorted(self.snapshot.products, key=lambda p: -len(p.evidence))
        return [
            TopIssue(
                product_name=product.name,
                product_id=product.product_id,
                external_sku=product.external_sku,
                issue_count=len(product.evidence),
                top_defect_types=product.ai_defect_types[:TOP_ISSUE_DEFECT_TAGS],
                severity=self._issue_severity(product),
            )
            for product in ranked[:max(limit, 0)]
        ]

    def high_risk_products(self, limit: int = HIGH_RISK_LIMIT) -> list[ProductRecord]:
        """Critical products by incident rate, highest first."""
        critical = [p for p in self.snapshot.products if p.is_critical]
        critical.sort(key=lambda p: -p.incident_rate)
        return critical[:max(limit, 0)]

    @staticmethod
    def _issue_severity(product: ProductRecord) -> Severity:
        if product.is_critical:
            return Severity.CRITICAL
        if product.incident_rate > HIGH_SEVERITY_RATE:
            return Severity.HIGH
        return Severity.MEDIUM
