"""Ingestion module: parsing, normalizing and grouping the incident export."""

from supplier_quality.ingestion.aggregator import group_by_product
from supplier_quality.ingestion.loader import LoadResult, load_records, parse_records, read_source
from supplier_quality.ingestion.normalizer import normalize_row, parse_deduction, parse_number
from supplier_quality.ingestion.parser import MIN_COLUMNS, iter_data_lines, split_fields

__all__ = [
    "MIN_COLUMNS",
    "LoadResult",
    "group_by_product",
    "iter_data_lines",
    "load_records",
    "normalize_row",
    "parse_deduction",
    "parse_number",
    "parse_records",
    "read_source",
    "split_fields",
]
