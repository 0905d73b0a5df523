"""Data models module for Supplier Quality Insights."""

from supplier_quality.models.schemas import (
    # Base Models
    BaseModel,
    FrozenModel,

    # Enums
    Severity,
    Program,
    PROGRAM_CATALOG,

    # Ingestion Models
    RawRecord,
    IngestionStats,
    ProductAggregate,
    ProductInsight,

    # Catalog Models
    EvidenceItem,
    ProductRecord,
    CatalogKPIs,
    TopIssue,
    CatalogSnapshot,
)

__all__ = [
    # Base Models
    "BaseModel",
    "FrozenModel",

    # Enums
    "Severity",
    "Program",
    "PROGRAM_CATALOG",

    # Ingestion Models
    "RawRecord",
    "IngestionStats",
    "ProductAggregate",
    "ProductInsight",

    # Catalog Models
    "EvidenceItem",
    "ProductRecord",
    "CatalogKPIs",
    "TopIssue",
    "CatalogSnapshot",
]
