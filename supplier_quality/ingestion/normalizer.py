"""
Typed normalization of raw export fields.

Numeric columns are tolerant: blanks, the ``N/A`` sentinel and unparsable
text all become 0.0, so a bad cell never aborts ingestion of a file.
"""

import math
import re
from typing import Optional, Sequence

from supplier_quality.models.schemas import RawRecord

NOT_AVAILABLE = "N/A"
DEFAULT_CURRENCY = "USD"

# Leading decimal literal, the way spreadsheet exports write numbers.
_NUMBER_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# Column positions of the export (header row is never consulted).
COL_PO_NUMBER = 0
COL_EXTERNAL_SKU = 1
COL_PRODUCT_ID = 2
COL_DELIVERY_DATE = 3
COL_INCIDENT_TYPE = 4
COL_INCIDENT_OR_RETURN = 5
COL_COMMENT = 6
COL_PHOTOS = 7
COL_IMAGE_ID = 8
COL_IMAGE_CONTEXT = 9
COL_IMAGE_URL = 10
COL_PARCEL_TYPE = 11
COL_BUYERS_REMORSE = 12
COL_TOTAL_INCIDENTS = 13
COL_LOST = 14
COL_DAMAGE = 15
COL_DEFECT = 16
COL_MISINFORMATION = 17
COL_MIS_SHIPPED = 18
COL_MISSING_PARTS = 19
COL_OTHER = 20
COL_DEDUCTION = 21
COL_DEDUCTION_CURRENCY = 22
COL_IMPROVEMENT_PLAN = 23
COL_IMPROVEMENT_PLAN_START = 24
COL_IMPROVEMENT_PLAN_COMMENT = 25


def parse_number(value: Optional[str]) -> float:
    """
    Parse a counter cell, returning 0.0 for anything that is not a number.

    Only the leading numeric literal is read, so ``"12 units"`` gives 12.0.
    The result is always finite.
    """
    if value is None:
        return 0.0
    text = value.strip()
    if not text or text == NOT_AVAILABLE:
        return 0.0

    match = _NUMBER_PREFIX.match(text)
    if not match:
        return 0.0
    try:
        parsed = float(match.group(0))
    except ValueError:
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def parse_deduction(value: Optional[str]) -> float:
    """Parse a deduction cell; same zero-on-failure policy as counters."""
    return parse_number(value)


def _text(fields: Sequence[str], index: int, default: str = "") -> str:
    if index >= len(fields):
        return default
    value = (fields[index] or "").strip()
    return value or default


def _number(fields: Sequence[str], index: int) -> float:
    if index >= len(fields):
        return 0.0
    return parse_number(fields[index])


def normalize_row(fields: Sequence[str]) -> RawRecord:
    """
    Map one split line onto a RawRecord.

    Missing trailing columns fall back to per-field defaults instead of
    raising.
    """
    return RawRecord(
        po_number=_text(fields, COL_PO_NUMBER),
        external_sku=_text(fields, COL_EXTERNAL_SKU),
        product_id=_text(fields, COL_PRODUCT_ID),
        delivery_date=_text(fields, COL_DELIVERY_DATE),
        incident_type=_text(fields, COL_INCIDENT_TYPE),
        incident_or_return=_text(fields, COL_INCIDENT_OR_RETURN),
        comment=_text(fields, COL_COMMENT),
        photos=_text(fields, COL_PHOTOS),
        image_id=_text(fields, COL_IMAGE_ID),
        image_context=_text(fields, COL_IMAGE_CONTEXT),
        image_url=_text(fields, COL_IMAGE_URL),
        parcel_type=_text(fields, COL_PARCEL_TYPE),
        buyers_remorse_return_count=_number(fields, COL_BUYERS_REMORSE),
        total_incidents_count=_number(fields, COL_TOTAL_INCIDENTS),
        lost_incidents_count=_number(fields, COL_LOST),
        damage_incidents_count=_number(fields, COL_DAMAGE),
        defect_incidents_count=_number(fields, COL_DEFECT),
        misinformation_incidents_count=_number(fields, COL_MISINFORMATION),
        mis_shipped_incidents_count=_number(fields, COL_MIS_SHIPPED),
        missing_parts_incidents_count=_number(fields, COL_MISSING_PARTS),
        other_incidents_count=_number(fields, COL_OTHER),
        deduction_amount=parse_deduction(fields[COL_DEDUCTION]) if len(fields) > COL_DEDUCTION else 0.0,
        deduction_currency=_text(fields, COL_DEDUCTION_CURRENCY, DEFAULT_CURRENCY),
        improvement_plan=_text(fields, COL_IMPROVEMENT_PLAN),
        improvement_plan_start_date=_text(fields, COL_IMPROVEMENT_PLAN_START),
        improvement_plan_comment=_text(fields, COL_IMPROVEMENT_PLAN_COMMENT),
    )
