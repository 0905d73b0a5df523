"""
Pydantic models and schemas for the Supplier Quality Insights pipeline.

This module defines all data structures used throughout the pipeline,
ensuring type safety, validation, and serialization consistency.

Models:
    - RawRecord: One normalized line of the incident/return export
    - ProductAggregate: All records sharing one product identifier
    - ProductInsight: Synthesized root cause, defect tags and insight line
    - EvidenceItem: One displayable incident photo with its classification
    - ProductRecord: Catalog entry served to the dashboard
    - CatalogKPIs / CatalogSnapshot: Fleet rollups and the cached catalog
    - TopIssue: Executive-summary row ranked by evidence volume
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Self

from pydantic import (
    BaseModel as PydanticBaseModel,
    ConfigDict,
    Field,
    field_serializer,
    model_validator,
)


# =============================================================================
# Base Configuration
# =============================================================================

class BaseModel(PydanticBaseModel):
    """Base model with common configuration for all schemas."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=False,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_json(self, **kwargs) -> str:
        """Serialize model to JSON string."""
        return self.model_dump_json(indent=2, **kwargs)

    def to_dict(self, **kwargs) -> dict[str, Any]:
        """Serialize model to dictionary."""
        return self.model_dump(**kwargs)

    @classmethod
    def from_json(cls, json_str: str) -> Self:
        """Deserialize model from JSON string."""
        return cls.model_validate_json(json_str)


class FrozenModel(BaseModel):
    """Immutable model for everything handed out by the read API."""

    model_config = ConfigDict(frozen=True)


# =============================================================================
# Enums
# =============================================================================

class Severity(str, Enum):
    """Evidence severity, ordered Critical > High > Medium > Low."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        """Ordering rank, 0 being the most severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


class Program(str, Enum):
    """
    Inspection/reporting channel an incident is attributed to.

    The catalog grew from the first six members to twelve. Member order is
    significant: program assignment and padding index into it, so new
    members must be appended and any consumer matching on exact labels
    updated in the same change.
    """
    CUSTOMER_REPORTED = "Customer Reported"
    ASIA_INSPECTION = "Asia Inspection"
    DELUXING = "Deluxing"
    XRAY_QC = "X-Ray QC"
    RETURNS = "Returns"
    QC = "QC"
    PRE_SHIPMENT_INSPECTION = "Pre-Shipment Inspection"
    INBOUND_QC = "Inbound QC"
    WAREHOUSE_AUDIT = "Warehouse Audit"
    SUPPLIER_AUDIT = "Supplier Audit"
    RANDOM_SAMPLING = "Random Sampling"
    BATCH_TESTING = "Batch Testing"


PROGRAM_CATALOG: tuple[Program, ...] = tuple(Program)


# =============================================================================
# Ingestion Models
# =============================================================================

class RawRecord(BaseModel):
    """
    One line of the incident/return export mapped to named, typed fields.

    Counters and the deduction amount are already normalized to floats;
    every other field is a trimmed string.
    """

    po_number: str = Field(default="", description="Purchase-order number")
    external_sku: str = Field(default="", description="Retailer-facing SKU code")
    product_id: str = Field(default="", description="Supplier product identifier")
    delivery_date: str = Field(default="", description="Delivery date, YYYY-MM-DD")
    incident_type: str = Field(default="")
    incident_or_return: str = Field(default="", description="Incident/return flag")
    comment: str = Field(default="", description="Free-text customer comment")
    photos: str = Field(default="")
    image_id: str = Field(default="")
    image_context: str = Field(default="", description="Image-for-incident-or-return flag")
    image_url: str = Field(default="")
    parcel_type: str = Field(default="")

    buyers_remorse_return_count: float = Field(default=0.0)
    total_incidents_count: float = Field(
        default=0.0,
        description="Per-product incident total, repeated on every row",
    )
    lost_incidents_count: float = Field(default=0.0)
    damage_incidents_count: float = Field(default=0.0)
    defect_incidents_count: float = Field(default=0.0)
    misinformation_incidents_count: float = Field(default=0.0)
    mis_shipped_incidents_count: float = Field(default=0.0)
    missing_parts_incidents_count: float = Field(default=0.0)
    other_incidents_count: float = Field(default=0.0)

    deduction_amount: float = Field(default=0.0, description="Deduction for this PO")
    deduction_currency: str = Field(default="USD")

    improvement_plan: str = Field(default="")
    improvement_plan_start_date: str = Field(default="")
    improvement_plan_comment: str = Field(default="")


class IngestionStats(BaseModel):
    """Counters collected while reading the source file."""

    lines_read: int = Field(default=0, ge=0, description="Non-empty data lines after the header")
    rows_parsed: int = Field(default=0, ge=0)
    rows_dropped_short: int = Field(default=0, ge=0, description="Lines with too few columns")
    rows_dropped_no_product: int = Field(default=0, ge=0, description="Rows without a product ID")
    products: int = Field(default=0, ge=0)


class ProductAggregate(BaseModel):
    """
    All records sharing one product identifier.

    ``incident_count`` is the maximum of the per-row incident total (the
    column is denormalized onto every row), while ``deduction_total`` sums
    the deductions of the contributing purchase orders.
    """

    product_id: str = Field(..., min_length=1)
    external_sku: str = Field(default="")
    records: list[RawRecord] = Field(default_factory=list)
    first_delivery_date: str = Field(default="")
    incident_count: float = Field(default=0.0)
    deduction_total: float = Field(default=0.0)
    deduction_currency: str = Field(default="USD")

    @property
    def comments(self) -> list[str]:
        """Non-blank comments of the contributing records, in row order."""
        return [r.comment for r in self.records if r.comment and r.comment.strip()]


class ProductInsight(BaseModel):
    """Synthesized narrative and display figures for one product."""

    root_cause: str
    defect_types: list[str] = Field(..., min_length=1, max_length=5)
    insight: str
    is_critical: bool
    display_incident_count: float = Field(default=0.0)
    display_financial_impact: float = Field(default=0.0)


# =============================================================================
# Catalog Models
# =============================================================================

class EvidenceItem(FrozenModel):
    """One incident photo with its heuristic classification."""

    id: str
    image_url: str = Field(..., alias="imageUrl")
    severity: Severity
    program: Program
    date: str
    defect_type: str = Field(..., alias="defectType")
    note: str


class ProductRecord(FrozenModel):
    """
    Catalog entry for one product as served to the dashboard.

    JSON aliases keep the camelCase contract the dashboard front end reads.
    """

    id: str
    sku: str
    product_id: str = Field(..., alias="productID")
    external_sku: str = Field(default="", alias="wayfairSKU")
    po_number: Optional[str] = Field(default=None, alias="poNumber")
    name: str
    manufacturer: str
    thumbnail: str = Field(default="")
    is_critical: bool = Field(..., alias="isCritical")
    photo_volume: int = Field(default=0, ge=0, alias="photoVolume")
    financial_exposure: float = Field(default=0.0, alias="financialExposure")
    programs_flagged: list[Program] = Field(default_factory=list, alias="programsFlagged")
    incident_rate: float = Field(default=0.0, ge=0, alias="incidentRate")
    ai_insight: str = Field(default="", alias="aiInsight")
    ai_root_cause: str = Field(default="", alias="aiRootCause")
    ai_defect_types: list[str] = Field(default_factory=list, alias="aiDefectTypes")
    evidence: list[EvidenceItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_photo_volume(self) -> Self:
        """Photo volume always equals the evidence count."""
        if self.photo_volume != len(self.evidence):
            raise ValueError(
                f"photo_volume ({self.photo_volume}) must equal the number of "
                f"evidence items ({len(self.evidence)})"
            )
        return self


class CatalogKPIs(FrozenModel):
    """Fleet-wide rollups over the catalog."""

    critical_products: int = Field(default=0, ge=0, alias="criticalSKUs")
    photos_analyzed: int = Field(default=0, ge=0, alias="photosAnalyzed")
    financial_exposure: float = Field(default=0.0, alias="gieOpportunity")
    suppliers_affected: int = Field(default=0, ge=0, alias="suppliersAffected")
    avg_incident_rate: float = Field(default=0.0, ge=0, alias="avgIncidentRate")
    total_evidence: int = Field(default=0, ge=0, alias="totalIncidents")

    @classmethod
    def empty(cls) -> CatalogKPIs:
        """All-zero KPIs for an empty catalog."""
        return cls()


class TopIssue(FrozenModel):
    """One row of the executive summary: a product ranked by evidence volume."""

    product_name: str = Field(..., alias="productName")
    product_id: str = Field(..., alias="productID")
    external_sku: str = Field(default="", alias="wayfairSKU")
    issue_count: int = Field(default=0, ge=0, alias="issueCount")
    top_defect_types: list[str] = Field(default_factory=list, alias="topDefectTypes")
    severity: Severity


class CatalogSnapshot(FrozenModel):
    """The sorted catalog plus KPIs, built once and then only read."""

    products: list[ProductRecord] = Field(default_factory=list)
    kpis: CatalogKPIs = Field(default_factory=CatalogKPIs)
    ingestion: IngestionStats = Field(default_factory=IngestionStats)
    source: Optional[str] = Field(default=None, description="Path of the source file")
    built_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    degraded: bool = Field(
        default=False,
        description="True when the source could not be read and the catalog is empty",
    )

    @field_serializer("built_at")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to ISO format string."""
        return value.isoformat()

    @classmethod
    def empty(cls, source: Optional[str] = None, degraded: bool = False) -> CatalogSnapshot:
        """Snapshot with no products and zeroed KPIs."""
        return cls(source=source, degraded=degraded)

    def find(self, product_id: str) -> Optional[ProductRecord]:
        """Look up a product by catalog id or SKU."""
        for product in self.products:
            if product.id == product_id or product.sku == product_id:
                return product
        return None
