"""Reading the export from disk and turning it into RawRecords."""

from dataclasses import dataclass, field
from pathlib import Path

from supplier_quality.ingestion.normalizer import normalize_row
from supplier_quality.ingestion.parser import MIN_COLUMNS, is_complete, iter_data_lines, split_fields
from supplier_quality.models.schemas import IngestionStats, RawRecord
from supplier_quality.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class LoadResult:
    """Records parsed from one export, with the drop counters."""
    records: list[RawRecord] = field(default_factory=list)
    stats: IngestionStats = field(default_factory=IngestionStats)


def read_source(path: Path, encoding: str = "utf-8") -> str:
    """
    Read the export file.

    I/O and decoding errors propagate; the pipeline decides how to degrade.
    """
    return Path(path).read_text(encoding=encoding)


def parse_records(text: str, min_columns: int = MIN_COLUMNS) -> LoadResult:
    """
    Parse export text into RawRecords.

    Short lines and rows without a product ID are dropped and counted, never
    raised.
    """
    result = LoadResult()
    stats = result.stats

    for line in iter_data_lines(text):
        stats.lines_read += 1
        fields = split_fields(line)
        if not is_complete(fields, min_columns):
            stats.rows_dropped_short += 1
            continue

        record = normalize_row(fields)
        if not record.product_id:
            stats.rows_dropped_no_product += 1
            continue

        result.records.append(record)
        stats.rows_parsed += 1

    if stats.rows_dropped_short or stats.rows_dropped_no_product:
        logger.debug(
            "Dropped incomplete rows",
            short=stats.rows_dropped_short,
            no_product=stats.rows_dropped_no_product,
        )
    return result


def load_records(path: Path, encoding: str = "utf-8") -> LoadResult:
    """Read and parse an export file in one step."""
    return parse_records(read_source(path, encoding=encoding))
