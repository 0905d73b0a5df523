import json

import pytest
from pydantic import ValidationError

from supplier_quality.models.schemas import (
    CatalogKPIs,
    CatalogSnapshot,
    EvidenceItem,
    ProductAggregate,
    ProductInsight,
    ProductRecord,
    RawRecord,
    Severity,
)


def _evidence(index: int = 0) -> EvidenceItem:
    return EvidenceItem(
        id=f"ev-P1-{index}",
        image_url="https://secure.img1-fg.wfcdn.com/im/1.jpg",
        severity=Severity.HIGH,
        program="QC",
        date="2024-01-01",
        defect_type="Crack",
        note="Cracked top",
    )


def _product(**overrides) -> ProductRecord:
    values = dict(
        id="P1",
        sku="P1",
        product_id="P1",
        name="WF-1",
        manufacturer="XYZ Supplier",
        is_critical=False,
        photo_volume=1,
        evidence=[_evidence()],
    )
    values.update(overrides)
    return ProductRecord(**values)


def test_severity_rank_order():
    ranks = [s.rank for s in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW)]
    assert ranks == sorted(ranks)


def test_raw_record_defaults():
    record = RawRecord()
    assert record.product_id == ""
    assert record.deduction_currency == "USD"
    assert record.total_incidents_count == 0.0


def test_aggregate_requires_product_id():
    with pytest.raises(ValidationError):
        ProductAggregate(product_id="")


def test_aggregate_comments_skip_blank():
    aggregate = ProductAggregate(
        product_id="P1",
        records=[RawRecord(comment="a"), RawRecord(comment="  "), RawRecord(comment="b")],
    )
    assert aggregate.comments == ["a", "b"]


def test_insight_requires_at_least_one_tag():
    with pytest.raises(ValidationError):
        ProductInsight(root_cause="x", defect_types=[], insight="x", is_critical=False)


def test_photo_volume_must_match_evidence():
    with pytest.raises(ValidationError):
        _product(photo_volume=2)


def test_incident_rate_cannot_be_negative():
    with pytest.raises(ValidationError):
        _product(incident_rate=-1)


def test_product_serializes_with_dashboard_aliases():
    data = _product(external_sku="WF-1", incident_rate=1.2).model_dump(mode="json", by_alias=True)

    assert data["productID"] == "P1"
    assert data["wayfairSKU"] == "WF-1"
    assert data["isCritical"] is False
    assert data["photoVolume"] == 1
    assert data["evidence"][0]["imageUrl"].startswith("https://")
    assert data["evidence"][0]["defectType"] == "Crack"
    assert data["evidence"][0]["severity"] == "High"


def test_product_accepts_aliases():
    product = ProductRecord.model_validate({
        "id": "P1",
        "sku": "P1",
        "productID": "P1",
        "name": "n",
        "manufacturer": "m",
        "isCritical": True,
    })
    assert product.is_critical is True
    assert product.photo_volume == 0


def test_product_is_frozen():
    product = _product()
    with pytest.raises(ValidationError):
        product.name = "changed"


def test_kpis_aliases():
    data = CatalogKPIs(critical_products=2, financial_exposure=10.5).model_dump(by_alias=True)
    assert data["criticalSKUs"] == 2
    assert data["gieOpportunity"] == 10.5


def test_snapshot_find_and_empty():
    snapshot = CatalogSnapshot(products=[_product(), _product(id="P2", sku="SKU-2", product_id="P2")])
    assert snapshot.find("SKU-2").id == "P2"
    assert snapshot.find("missing") is None

    empty = CatalogSnapshot.empty(source="x.csv", degraded=True)
    assert empty.products == []
    assert empty.kpis == CatalogKPIs()
    assert empty.degraded is True


def test_snapshot_json_roundtrip():
    snapshot = CatalogSnapshot(products=[_product()])
    restored = CatalogSnapshot.from_json(snapshot.to_json())
    assert restored.products[0].id == "P1"
    assert isinstance(json.loads(snapshot.to_json())["built_at"], str)
