"""Catalog build pipeline and read access."""

from supplier_quality.pipeline.catalog_builder import (
    CatalogBuilder,
    calculate_incident_rate,
    compute_kpis,
    filter_evidence,
    is_valid_image_url,
    pad_programs,
    pick_thumbnail,
    program_breakdown,
    sort_products,
)
from supplier_quality.pipeline.orchestrator import (
    CatalogPipeline,
    PipelineError,
    PipelineStep,
    ProgressTracker,
    SourceReadError,
    build_catalog_snapshot,
)
from supplier_quality.pipeline.provider import CatalogProvider

__all__ = [
    # Builder
    "CatalogBuilder",
    "calculate_incident_rate",
    "compute_kpis",
    "filter_evidence",
    "is_valid_image_url",
    "pad_programs",
    "pick_thumbnail",
    "program_breakdown",
    "sort_products",
    # Orchestrator
    "CatalogPipeline",
    "PipelineError",
    "PipelineStep",
    "ProgressTracker",
    "SourceReadError",
    "build_catalog_snapshot",
    # Provider
    "CatalogProvider",
]
