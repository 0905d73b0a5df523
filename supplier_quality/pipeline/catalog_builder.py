"""
Catalog Builder for the Supplier Quality Insights pipeline.

Turns per-product aggregates into dashboard catalog entries:
    1. Evidence - one item per row with a usable image URL
    2. Product record - criticality, exposure, incident rate, programs
    3. Ordering - critical first, then incident rate, then product ID
    4. KPIs - fleet rollups over the finished catalog

Program padding and synthetic evidence dates are presentation heuristics.
They are deterministic so two builds over the same file are identical.
"""

import re
from collections import Counter
from collections.abc import Mapping
from datetime import timedelta
from typing import Iterable, Optional, Sequence, Union

from supplier_quality.analyzers.classifier import (
    assign_program,
    classify_severity,
    extract_defect_type,
    string_hash,
)
from supplier_quality.analyzers.insight_synthesizer import InsightSynthesizer
from supplier_quality.config.settings import Settings, get_settings
from supplier_quality.models.schemas import (
    PROGRAM_CATALOG,
    CatalogKPIs,
    EvidenceItem,
    Program,
    ProductAggregate,
    ProductRecord,
    RawRecord,
    Severity,
)
from supplier_quality.utils.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

IMAGE_EXTENSION = re.compile(r"\.(jpg|jpeg|png|gif|webp)(\?|$)", re.IGNORECASE)
URL_SCHEMES = ("http://", "https://")
DEFAULT_CDN_HOSTS = ("wfcdn.com",)

# Used for evidence notes when the source comment is blank.
NOTE_TEMPLATES: tuple[str, ...] = (
    "Incident reported for {name}",
    "Customer photo submitted for {name}",
    "Damage documented on delivery of {name}",
    "Quality concern logged for {name}",
)

# (incident count upper bound, programs shown) for critical products.
CRITICAL_PROGRAM_TIERS: tuple[tuple[float, int], ...] = (
    (5, 6),
    (10, 8),
)
CRITICAL_PROGRAM_MAX = 10
STANDARD_PROGRAM_MIN = 2


# =============================================================================
# Helpers
# =============================================================================

def is_valid_image_url(url: str, cdn_hosts: Sequence[str] = DEFAULT_CDN_HOSTS) -> bool:
    """
    Whether ``url`` can be shown as an evidence photo.

    Accepts http(s) URLs that either mention a known image CDN host or end in
    an image extension (optionally followed by a query string).
    """
    if not url or not url.strip():
        return False
    if not url.startswith(URL_SCHEMES):
        return False
    lowered = url.lower()
    if any(host and host in lowered for host in cdn_hosts):
        return True
    return IMAGE_EXTENSION.search(url) is not None


def pick_thumbnail(urls: Iterable[str], cdn_hosts: Sequence[str] = DEFAULT_CDN_HOSTS) -> str:
    """First valid image URL, else the first non-empty URL, else ``""``."""
    candidates = [u for u in urls if u and u.strip()]
    for url in candidates:
        if is_valid_image_url(url, cdn_hosts):
            return url
    return candidates[0] if candidates else ""


def calculate_incident_rate(
    incident_count: float,
    multiplier: float = 1.2,
    cap: float = 15.0,
) -> float:
    """Incident-rate percentage, clamped to ``[0, cap]`` and rounded to 1 decimal."""
    return round(min(max(incident_count * multiplier, 0.0), cap), 1)


def program_target(is_critical: bool, incident_count: float) -> int:
    """How many programs a product should show as flagged."""
    if not is_critical:
        return STANDARD_PROGRAM_MIN
    for upper_bound, target in CRITICAL_PROGRAM_TIERS:
        if incident_count < upper_bound:
            return target
    return CRITICAL_PROGRAM_MAX


def pad_programs(programs: Sequence[str], product_id: str, target: int) -> list[str]:
    """
    Extend ``programs`` to ``target`` entries from the catalog.

    Walks the catalog starting at ``string_hash(product_id) % 12``, skipping
    programs already present. Existing entries are never removed.
    """
    flagged = list(programs)
    start = string_hash(product_id) % len(PROGRAM_CATALOG)
    for step in range(len(PROGRAM_CATALOG)):
        if len(flagged) >= target:
            break
        candidate = PROGRAM_CATALOG[(start + step) % len(PROGRAM_CATALOG)]
        if candidate not in flagged:
            flagged.append(candidate)
    return flagged


def sort_products(products: Iterable[ProductRecord]) -> list[ProductRecord]:
    """Critical first, incident rate descending, product ID ascending."""
    return sorted(
        products,
        key=lambda p: (not p.is_critical, -p.incident_rate, p.product_id),
    )


def compute_kpis(products: Sequence[ProductRecord]) -> CatalogKPIs:
    """Fleet-wide rollups; an empty catalog yields all zeros."""
    if not products:
        return CatalogKPIs.empty()

    total_rate = sum(p.incident_rate for p in products)
    return CatalogKPIs(
        critical_products=sum(1 for p in products if p.is_critical),
        photos_analyzed=sum(p.photo_volume for p in products),
        financial_exposure=round(sum(p.financial_exposure for p in products), 2),
        suppliers_affected=len({p.manufacturer for p in products}),
        avg_incident_rate=round(total_rate / len(products), 1),
        total_evidence=sum(len(p.evidence) for p in products),
    )


def program_breakdown(product: ProductRecord) -> dict[str, int]:
    """Evidence count per program, in first-seen order."""
    return dict(Counter(item.program for item in product.evidence))


def filter_evidence(
    product: ProductRecord,
    program: Optional[Union[Program, str]] = None,
    severity: Optional[Union[Severity, str]] = None,
) -> list[EvidenceItem]:
    """Evidence of one product narrowed by program and/or severity."""
    items = list(product.evidence)
    if program:
        items = [item for item in items if item.program == program]
    if severity:
        items = [item for item in items if item.severity == severity]
    return items


# =============================================================================
# Catalog Builder Implementation
# =============================================================================

class CatalogBuilder:
    """
    Builds the sorted product catalog and its KPIs from aggregates.

    Example:
        >>> builder = CatalogBuilder(settings)
        >>> products, kpis = builder.build(group_by_product(records))
        >>> print(kpis.critical_products)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        synthesizer: Optional[InsightSynthesizer] = None,
    ):
        """
        Initialize the catalog builder.

        Args:
            settings: Application settings (optional)
            synthesizer: Insight synthesizer (created if not provided)
        """
        self.settings = settings or get_settings()
        self.synthesizer = synthesizer or InsightSynthesizer()
        self.cdn_hosts = tuple(self.settings.image_cdn_hosts)

    def build(
        self,
        aggregates: Union[Mapping[str, ProductAggregate], Iterable[ProductAggregate]],
    ) -> tuple[list[ProductRecord], CatalogKPIs]:
        """
        Build catalog entries for every aggregate.

        Args:
            aggregates: Output of ``group_by_product`` (or its values)

        Returns:
            Tuple of (sorted products, KPIs)
        """
        if isinstance(aggregates, Mapping):
            aggregates = aggregates.values()

        self.synthesizer.reset_metrics()
        products = sort_products(self.build_product(a) for a in aggregates)
        kpis = compute_kpis(products)

        logger.info(
            "Catalog built",
            products=len(products),
            critical=kpis.critical_products,
            evidence=kpis.total_evidence,
        )
        return products, kpis

    def build_product(self, aggregate: ProductAggregate) -> ProductRecord:
        """Build the catalog entry for one product."""
        insight = self.synthesizer.synthesize(aggregate)
        name = aggregate.external_sku or f"Product {aggregate.product_id}"
        evidence = self.build_evidence(aggregate, name)

        seen_programs = list(dict.fromkeys(item.program for item in evidence))
        flagged = pad_programs(
            seen_programs,
            aggregate.product_id,
            program_target(insight.is_critical, aggregate.incident_count),
        )

        first_po = aggregate.records[0].po_number if aggregate.records else ""

        return ProductRecord(
            id=aggregate.product_id,
            sku=aggregate.product_id,
            product_id=aggregate.product_id,
            external_sku=aggregate.external_sku,
            po_number=first_po or None,
            name=name,
            manufacturer=self.settings.manufacturer_name,
            thumbnail=pick_thumbnail((r.image_url for r in aggregate.records), self.cdn_hosts),
            is_critical=insight.is_critical,
            photo_volume=len(evidence),
            financial_exposure=round(insight.display_financial_impact, 2),
            programs_flagged=flagged,
            incident_rate=calculate_incident_rate(
                aggregate.incident_count,
                self.settings.incident_rate_multiplier,
                self.settings.incident_rate_cap,
            ),
            ai_insight=insight.insight,
            ai_root_cause=insight.root_cause,
            ai_defect_types=insight.defect_types,
            evidence=evidence,
        )

    def build_evidence(self, aggregate: ProductAggregate, name: str) -> list[EvidenceItem]:
        """One evidence item per record with a valid image URL; others are dropped."""
        rows = [r for r in aggregate.records if is_valid_image_url(r.image_url, self.cdn_hosts)]
        return [
            EvidenceItem(
                id=f"ev-{aggregate.product_id}-{index}",
                image_url=record.image_url,
                severity=classify_severity(record.comment),
                program=assign_program(
                    record.delivery_date,
                    record.incident_or_return,
                    index,
                    aggregate.incident_count,
                ),
                date=self.evidence_date(record, index, len(rows)),
                defect_type=extract_defect_type(record.comment, index),
                note=record.comment or NOTE_TEMPLATES[index % len(NOTE_TEMPLATES)].format(name=name),
            )
            for index, record in enumerate(rows)
        ]

    def evidence_date(self, record: RawRecord, index: int, total: int) -> str:
        """
        Date shown on an evidence item.

        The delivery date when present, else the reference date. With
        synthetic dates enabled, items are spread back from the reference
        date across the configured window instead.
        """
        reference = self.settings.reference_date()
        if self.settings.synthetic_evidence_dates:
            window = self.settings.evidence_date_window_days
            offset = min(index * window // max(total, 1), window)
            return (reference - timedelta(days=offset)).isoformat()
        return record.delivery_date or reference.isoformat()
