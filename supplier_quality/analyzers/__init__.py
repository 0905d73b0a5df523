"""Keyword heuristics: per-row classification and per-product insight synthesis."""

from supplier_quality.analyzers.classifier import (
    assign_program,
    classify_severity,
    extract_defect_type,
    string_hash,
)
from supplier_quality.analyzers.insight_synthesizer import (
    InsightSynthesizer,
    format_currency,
)

__all__ = [
    "InsightSynthesizer",
    "assign_program",
    "classify_severity",
    "extract_defect_type",
    "format_currency",
    "string_hash",
]
