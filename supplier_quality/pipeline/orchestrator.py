"""
Pipeline orchestrator.

Runs the catalog build as a plain synchronous sequence:

    read source -> parse rows -> group by product -> build catalog

Features:
    - One entry point (``build_catalog_snapshot``) that never raises for an
      unreadable source and degrades to an empty catalog instead
    - Per-step timings and progress callbacks
    - Structured logging with the source path bound for the whole run
"""

import time
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from supplier_quality.config.settings import Settings, get_settings
from supplier_quality.ingestion.aggregator import group_by_product
from supplier_quality.ingestion.loader import parse_records, read_source
from supplier_quality.models.schemas import CatalogSnapshot
from supplier_quality.pipeline.catalog_builder import CatalogBuilder
from supplier_quality.utils.logger import LogContext, get_logger

logger = get_logger(__name__)


class PipelineStep(str, Enum):
    """Steps of a catalog build, in execution order."""
    READ_SOURCE = "read_source"
    PARSE_ROWS = "parse_rows"
    GROUP_PRODUCTS = "group_products"
    BUILD_CATALOG = "build_catalog"


# =============================================================================
# Error Classes
# =============================================================================

class PipelineError(Exception):
    """Base exception for pipeline errors."""

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


class SourceReadError(PipelineError):
    """The source file is missing, unreadable or not decodable."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(
            message=f"Cannot read source file '{path}': {reason}",
            details={"path": str(path), "reason": reason},
            recoverable=True,
        )
        self.path = str(path)


# =============================================================================
# Progress Tracker
# =============================================================================

class ProgressTracker:
    """Tracks and reports pipeline progress."""

    STEP_WEIGHTS = {
        PipelineStep.READ_SOURCE: 10,
        PipelineStep.PARSE_ROWS: 30,
        PipelineStep.GROUP_PRODUCTS: 20,
        PipelineStep.BUILD_CATALOG: 40,
    }

    def __init__(self, callback: Optional[Callable[[int, str], None]] = None):
        """
        Initialize progress tracker.

        Args:
            callback: Optional callback(progress_percent, message) for progress updates
        """
        self.callback = callback
        self.completed_steps: list[PipelineStep] = []

    def mark_complete(self, step: PipelineStep) -> int:
        """Mark a step as complete and return new progress percentage."""
        self.completed_steps.append(step)
        progress = self.get_progress()

        if self.callback:
            self.callback(progress, f"Completed: {step.value}")

        return progress

    def get_progress(self) -> int:
        """Get current progress percentage."""
        return sum(self.STEP_WEIGHTS.get(s, 0) for s in self.completed_steps)


# =============================================================================
# Catalog Pipeline
# =============================================================================

class CatalogPipeline:
    """
    Builds a CatalogSnapshot from the incident/return export.

    Example:
        >>> pipeline = CatalogPipeline(settings)
        >>> snapshot = pipeline.run()
        >>> print(snapshot.kpis.critical_products)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        builder: Optional[CatalogBuilder] = None,
        progress_callback: Optional[Callable[[int, str], None]] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Application settings (optional)
            builder: Catalog builder (created if not provided)
            progress_callback: Optional callback for progress updates
        """
        self.settings = settings or get_settings()
        self.builder = builder or CatalogBuilder(self.settings)
        self.progress_callback = progress_callback
        self.step_timings: dict[str, int] = {}

    def run(self, source: Optional[Union[str, Path]] = None) -> CatalogSnapshot:
        """
        Read the source file and build the catalog.

        Args:
            source: Path override; defaults to ``settings.source_csv_path``

        Returns:
            CatalogSnapshot with sorted products and KPIs

        Raises:
            SourceReadError: If the file cannot be read or decoded
        """
        path = Path(source) if source else self.settings.source_csv_path
        tracker = ProgressTracker(self.progress_callback)
        self.step_timings = {}

        with LogContext(source=str(path)):
            logger.info("Starting catalog build")

            start = time.time()
            try:
                text = read_source(path, encoding=self.settings.source_encoding)
            except (OSError, UnicodeDecodeError) as e:
                raise SourceReadError(path, str(e)) from e
            self._record(PipelineStep.READ_SOURCE, start, tracker)

            return self._build(text, str(path), tracker)

    def run_text(self, text: str, source: Optional[str] = None) -> CatalogSnapshot:
        """Build the catalog from export text already in memory."""
        tracker = ProgressTracker(self.progress_callback)
        self.step_timings = {}

        with LogContext(source=source or "<memory>"):
            return self._build(text, source, tracker)

    def _build(
        self,
        text: str,
        source: Optional[str],
        tracker: ProgressTracker,
    ) -> CatalogSnapshot:
        start = time.time()
        loaded = parse_records(text)
        self._record(PipelineStep.PARSE_ROWS, start, tracker)

        start = time.time()
        aggregates = group_by_product(loaded.records)
        loaded.stats.products = len(aggregates)
        self._record(PipelineStep.GROUP_PRODUCTS, start, tracker)

        start = time.time()
        products, kpis = self.builder.build(aggregates)
        self._record(PipelineStep.BUILD_CATALOG, start, tracker)

        logger.info(
            "Catalog build completed",
            rows=loaded.stats.rows_parsed,
            dropped=loaded.stats.rows_dropped_short + loaded.stats.rows_dropped_no_product,
            products=len(products),
            duration_ms=sum(self.step_timings.values()),
        )
        return CatalogSnapshot(
            products=products,
            kpis=kpis,
            ingestion=loaded.stats,
            source=source,
        )

    def _record(self, step: PipelineStep, start: float, tracker: ProgressTracker) -> None:
        self.step_timings[step.value] = int((time.time() - start) * 1000)
        tracker.mark_complete(step)


# =============================================================================
# Convenience Function
# =============================================================================

def build_catalog_snapshot(
    source: Optional[Union[str, Path]] = None,
    settings: Optional[Settings] = None,
    builder: Optional[CatalogBuilder] = None,
) -> CatalogSnapshot:
    """
    Build the catalog, degrading to an empty snapshot on failure.

    A missing or unreadable source is logged and yields an empty catalog
    with zeroed KPIs and ``degraded=True``; callers never see the error.

    Args:
        source: Optional path override
        settings: Optional settings
        builder: Optional catalog builder

    Returns:
        CatalogSnapshot (possibly empty)
    """
    settings = settings or get_settings()
    pipeline = CatalogPipeline(settings, builder=builder)
    try:
        return pipeline.run(source)
    except PipelineError as e:
        logger.error("Catalog build failed", error=e.message, **e.details)
        path = str(source) if source else str(settings.source_csv_path)
        return CatalogSnapshot.empty(source=path, degraded=True)
