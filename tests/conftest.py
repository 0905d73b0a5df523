import pytest
from datetime import date
from pathlib import Path

from supplier_quality.config.settings import Settings
from supplier_quality.ingestion.aggregator import group_by_product
from supplier_quality.ingestion.loader import parse_records
from supplier_quality.models.schemas import ProductAggregate, RawRecord
from supplier_quality.pipeline.catalog_builder import CatalogBuilder
from supplier_quality.pipeline.provider import CatalogProvider

FIXTURES_DIR = Path(__file__).parent / "fixtures"
INCIDENTS_CSV = FIXTURES_DIR / "incidents.csv"

HEADER = (
    "PO Number,Wayfair SKU,Product ID,Delivery Date,Incident Type,Incident or Return,"
    "Comment,Photos,Image ID,Image for Incident or Return,Image URL,Parcel Type,"
    "Buyers Remorse Returns,Total Incidents,Lost Incidents,Damage Incidents,"
    "Defect Incidents,Misinformation Incidents,Mis-shipped Incidents,"
    "Missing Parts Incidents,Other Incidents,Deduction Amount,Deduction Currency,"
    "Improvement Plan,Improvement Plan Start Date,Improvement Plan Comment"
)


def make_row(
    product_id: str = "P1",
    sku: str = "WF-1001",
    date: str = "2024-01-01",
    comment: str = "Minor scratch on surface",
    image_url: str = "https://secure.img1-fg.wfcdn.com/im/0001.jpg",
    total_incidents: str = "1",
    deduction: str = "0",
    po_number: str = "PO-1",
    flag: str = "Incident",
) -> str:
    """One 26-column export line; the comment is quoted."""
    fields = [
        po_number, sku, product_id, date, "Damage", flag, f'"{comment}"', "Yes",
        "IMG-1", flag, image_url, "Small Parcel", "0", total_incidents,
        "0", "1", "0", "0", "0", "0", "0", deduction, "USD", "No", "", "",
    ]
    return ",".join(fields)


def make_csv(*rows: str) -> str:
    return "\n".join([HEADER, *rows]) + "\n"


def make_record(**overrides) -> RawRecord:
    values = {
        "po_number": "PO-1",
        "external_sku": "WF-1001",
        "product_id": "P1",
        "delivery_date": "2024-01-01",
        "incident_or_return": "Incident",
        "comment": "Minor scratch on surface",
        "image_url": "https://secure.img1-fg.wfcdn.com/im/0001.jpg",
        "total_incidents_count": 1.0,
        "deduction_amount": 0.0,
    }
    values.update(overrides)
    return RawRecord(**values)


def make_aggregate(records=None, **overrides) -> ProductAggregate:
    records = records if records is not None else [make_record()]
    values = {
        "product_id": records[0].product_id if records else "P1",
        "external_sku": records[0].external_sku if records else "WF-1001",
        "records": records,
        "first_delivery_date": records[0].delivery_date if records else "",
        "incident_count": max((r.total_incidents_count for r in records), default=0.0),
        "deduction_total": sum(r.deduction_amount for r in records if r.deduction_amount > 0),
    }
    values.update(overrides)
    return ProductAggregate(**values)


@pytest.fixture
def settings(tmp_path):
    """Real settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        app_env="test",
        log_json=False,
        source_csv_path=INCIDENTS_CSV,
        output_dir=tmp_path / "reports",
        evidence_reference_date=date(2024, 6, 1),
    )


@pytest.fixture
def csv_text():
    return INCIDENTS_CSV.read_text(encoding="utf-8")


@pytest.fixture
def records(csv_text):
    return parse_records(csv_text).records


@pytest.fixture
def aggregates(records):
    return group_by_product(records)


@pytest.fixture
def builder(settings):
    return CatalogBuilder(settings)


@pytest.fixture
def provider(settings):
    return CatalogProvider(settings)


@pytest.fixture
def missing_provider(settings, tmp_path):
    return CatalogProvider(settings, source=tmp_path / "does-not-exist.csv")


@pytest.fixture
def row():
    """Factory for single export lines."""
    return make_row


@pytest.fixture
def csv_of():
    """Factory for export text with the header row."""
    return make_csv


@pytest.fixture
def record():
    """Factory for RawRecords with sensible defaults."""
    return make_record


@pytest.fixture
def aggregate_of():
    """Factory for ProductAggregates."""
    return make_aggregate
