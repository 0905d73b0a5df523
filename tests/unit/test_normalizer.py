import math

import pytest

from supplier_quality.ingestion.normalizer import normalize_row, parse_deduction, parse_number
from supplier_quality.ingestion.parser import split_fields


@pytest.mark.parametrize("value", [None, "", "   ", "N/A", "abc", "-", ".", "nan", "inf"])
def test_parse_number_defaults_to_zero(value):
    assert parse_number(value) == 0.0


@pytest.mark.parametrize(
    "value,expected",
    [
        ("3", 3.0),
        (" 4.5 ", 4.5),
        ("-2", -2.0),
        (".5", 0.5),
        ("12 units", 12.0),
        ("1e3", 1000.0),
    ],
)
def test_parse_number_reads_leading_literal(value, expected):
    assert parse_number(value) == expected


def test_parse_number_is_always_finite():
    assert math.isfinite(parse_number("1e999"))
    assert parse_number("1e999") == 0.0


def test_parse_deduction_na_is_zero():
    assert parse_deduction("N/A") == 0.0
    assert parse_deduction("10.25") == 10.25


def test_normalize_full_row(row):
    fields = split_fields(row(product_id="P9", sku="WF-9", deduction="12.5", total_incidents="3"))
    record = normalize_row(fields)

    assert record.product_id == "P9"
    assert record.external_sku == "WF-9"
    assert record.po_number == "PO-1"
    assert record.comment == "Minor scratch on surface"
    assert record.image_url.startswith("https://")
    assert record.total_incidents_count == 3.0
    assert record.damage_incidents_count == 1.0
    assert record.deduction_amount == 12.5
    assert record.deduction_currency == "USD"


def test_normalize_trims_fields():
    fields = [" PO ", " SKU ", " P1 "] + [""] * 23
    record = normalize_row(fields)
    assert (record.po_number, record.external_sku, record.product_id) == ("PO", "SKU", "P1")


def test_normalize_missing_trailing_columns_default():
    record = normalize_row(["PO-1", "WF-1", "P1"])
    assert record.product_id == "P1"
    assert record.total_incidents_count == 0.0
    assert record.deduction_amount == 0.0
    assert record.deduction_currency == "USD"
    assert record.improvement_plan_comment == ""


def test_normalize_blank_currency_defaults_to_usd():
    fields = [""] * 26
    fields[2] = "P1"
    fields[22] = "  "
    assert normalize_row(fields).deduction_currency == "USD"


def test_normalize_never_raises_on_garbage():
    record = normalize_row(["x"] * 26)
    assert record.total_incidents_count == 0.0
    assert record.deduction_amount == 0.0
