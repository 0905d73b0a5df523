from datetime import date

import pytest

from supplier_quality.models.schemas import PROGRAM_CATALOG, Program, Severity
from supplier_quality.pipeline.catalog_builder import (
    NOTE_TEMPLATES,
    CatalogBuilder,
    calculate_incident_rate,
    compute_kpis,
    filter_evidence,
    is_valid_image_url,
    pad_programs,
    pick_thumbnail,
    program_breakdown,
    program_target,
)


# =============================================================================
# Helpers
# =============================================================================

@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://secure.img1-fg.wfcdn.com/im/123", True),
        ("http://example.com/photo.JPG", True),
        ("https://example.com/photo.webp?w=200", True),
        ("https://example.com/photo.png/extra", False),
        ("https://example.com/page", False),
        ("ftp://wfcdn.com/a.jpg", False),
        ("not-a-url", False),
        ("", False),
        ("   ", False),
    ],
)
def test_is_valid_image_url(url, expected):
    assert is_valid_image_url(url) is expected


def test_custom_cdn_hosts():
    assert is_valid_image_url("https://img.example.net/abc", ("img.example.net",))
    assert not is_valid_image_url("https://secure.img1-fg.wfcdn.com/im/1", ("img.example.net",))


def test_pick_thumbnail():
    assert pick_thumbnail(["", "bad", "https://x.com/a.png"]) == "https://x.com/a.png"
    assert pick_thumbnail(["", "bad", "also-bad"]) == "bad"
    assert pick_thumbnail(["", "  "]) == ""
    assert pick_thumbnail([]) == ""


@pytest.mark.parametrize(
    "count,expected",
    [(0, 0.0), (1, 1.2), (4, 4.8), (12.5, 15.0), (100, 15.0), (100000, 15.0), (-3, 0.0)],
)
def test_incident_rate_is_capped(count, expected):
    assert calculate_incident_rate(count) == pytest.approx(expected)


def test_incident_rate_custom_cap():
    assert calculate_incident_rate(10, multiplier=2.0, cap=5.0) == 5.0


@pytest.mark.parametrize(
    "critical,count,expected",
    [(False, 100, 2), (True, 1, 6), (True, 4, 6), (True, 5, 8), (True, 9, 8), (True, 10, 10)],
)
def test_program_target(critical, count, expected):
    assert program_target(critical, count) == expected


def test_pad_programs_keeps_existing_and_dedupes():
    padded = pad_programs([Program.QC], "P1", 6)
    assert padded[0] == Program.QC
    assert len(padded) == 6
    assert len(set(padded)) == 6


def test_pad_programs_never_truncates():
    programs = list(PROGRAM_CATALOG[:4])
    assert pad_programs(programs, "P1", 2) == programs


def test_pad_programs_is_deterministic():
    assert pad_programs([], "P42", 8) == pad_programs([], "P42", 8)


# =============================================================================
# Building
# =============================================================================

@pytest.fixture
def built(builder, aggregates):
    products, kpis = builder.build(aggregates)
    return {p.product_id: p for p in products}, products, kpis


def test_sort_order(built):
    _, products, _ = built
    assert [p.product_id for p in products] == ["P2", "P3", "P1"]


def test_sort_tiebreak_on_product_id(builder, aggregate_of, record):
    aggregates = [
        aggregate_of([record(product_id="B")]),
        aggregate_of([record(product_id="A")]),
    ]
    products, _ = builder.build(aggregates)
    assert [p.product_id for p in products] == ["A", "B"]


def test_minor_scratch_product(built):
    by_id, _, _ = built
    p1 = by_id["P1"]

    assert p1.is_critical is False
    assert p1.name == "WF-1001"
    assert p1.manufacturer == "XYZ Supplier"
    assert p1.po_number == "PO-1"
    assert p1.incident_rate == 1.2
    assert p1.financial_exposure == 0.0
    assert p1.photo_volume == 1
    assert p1.evidence[0].severity == Severity.MEDIUM
    assert p1.evidence[0].defect_type == "Scratch"
    assert "Scratch" in p1.ai_defect_types
    assert p1.ai_insight == "Single Incident • $0.00 impact"
    assert len(p1.programs_flagged) == 2
    assert p1.programs_flagged[0] == p1.evidence[0].program


def test_critical_product_with_invalid_image(built):
    by_id, _, _ = built
    p2 = by_id["P2"]

    assert p2.is_critical is True
    assert p2.photo_volume == 2
    assert [e.id for e in p2.evidence] == ["ev-P2-0", "ev-P2-1"]
    assert p2.evidence[0].severity == Severity.CRITICAL
    assert p2.evidence[1].severity == Severity.HIGH
    assert p2.incident_rate == 4.8
    assert p2.financial_exposure == 23250.0
    assert p2.ai_insight == "High Priority • 6 incidents • $23,250.00 impact"
    assert len(p2.programs_flagged) == 6
    assert p2.thumbnail == "https://secure.img1-fg.wfcdn.com/im/0002.jpg"


def test_deduction_only_critical(built):
    by_id, _, _ = built
    p3 = by_id["P3"]

    assert p3.is_critical is True
    assert p3.photo_volume == 1
    assert p3.evidence[0].image_url == "https://cdn.example.com/p3.png?size=large"
    assert p3.evidence[0].defect_type == "Odor"
    assert p3.financial_exposure == 90000.0
    assert p3.ai_defect_types == ["Finish", "Contamination", "Odor", "Mold", "Peeling Finish"]


def test_photo_volume_matches_evidence(built):
    _, products, _ = built
    for product in products:
        assert product.photo_volume == len(product.evidence)
        assert 0 <= product.incident_rate <= 15.0
        assert 1 <= len(product.ai_defect_types) <= 5


def test_programs_include_every_evidence_program(built):
    _, products, _ = built
    for product in products:
        evidence_programs = list(dict.fromkeys(e.program for e in product.evidence))
        assert product.programs_flagged[:len(evidence_programs)] == evidence_programs


def test_kpis(built):
    _, _, kpis = built
    assert kpis.critical_products == 2
    assert kpis.photos_analyzed == 4
    assert kpis.total_evidence == 4
    assert kpis.suppliers_affected == 1
    assert kpis.financial_exposure == pytest.approx(113250.0)
    assert kpis.avg_incident_rate == pytest.approx(2.4)


def test_kpis_empty_catalog():
    kpis = compute_kpis([])
    assert kpis.critical_products == 0
    assert kpis.avg_incident_rate == 0.0
    assert kpis.financial_exposure == 0.0


def test_build_is_deterministic(builder, aggregates):
    first, _ = builder.build(aggregates)
    second, _ = builder.build(aggregates)
    assert [p.model_dump() for p in first] == [p.model_dump() for p in second]


# =============================================================================
# Evidence details
# =============================================================================

def test_blank_comment_uses_note_template(builder, aggregate_of, record):
    aggregate = aggregate_of([record(comment="", external_sku="WF-77")])
    product = builder.build_product(aggregate)
    assert product.evidence[0].note == NOTE_TEMPLATES[0].format(name="WF-77")


def test_name_falls_back_to_product_id(builder, aggregate_of, record):
    product = builder.build_product(aggregate_of([record(external_sku="")]))
    assert product.name == "Product P1"


def test_missing_date_uses_reference_date(builder, aggregate_of, record):
    product = builder.build_product(aggregate_of([record(delivery_date="")]))
    assert product.evidence[0].date == "2024-06-01"


def test_synthetic_dates_spread_back_from_reference(settings, aggregate_of, record):
    settings = settings.model_copy(update={"synthetic_evidence_dates": True})
    builder = CatalogBuilder(settings)
    aggregate = aggregate_of([record() for _ in range(3)])

    dates = [e.date for e in builder.build_product(aggregate).evidence]
    assert dates == ["2024-06-01", "2024-05-02", "2024-04-02"]
    assert all(date.fromisoformat(d) >= date(2024, 3, 3) for d in dates)


def test_program_breakdown_and_filter(built):
    by_id, _, _ = built
    p2 = by_id["P2"]

    breakdown = program_breakdown(p2)
    assert sum(breakdown.values()) == 2

    critical = filter_evidence(p2, severity=Severity.CRITICAL)
    assert [e.id for e in critical] == ["ev-P2-0"]
    assert filter_evidence(p2, severity="Medium") == []

    program = p2.evidence[0].program
    assert all(e.program == program for e in filter_evidence(p2, program=program))
    assert filter_evidence(p2) == list(p2.evidence)


def test_build_resets_synthesis_metrics(builder, aggregates):
    builder.build(aggregates)
    builder.build(aggregates)

    metrics = builder.synthesizer.get_metrics()
    assert metrics.products == 3
    assert metrics.boosted_counts == 2
