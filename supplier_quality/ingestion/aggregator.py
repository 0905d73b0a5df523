"""Grouping normalized records into per-product aggregates."""

from typing import Iterable

from supplier_quality.models.schemas import ProductAggregate, RawRecord


def _seed(record: RawRecord) -> ProductAggregate:
    return ProductAggregate(
        product_id=record.product_id,
        external_sku=record.external_sku,
        records=[record],
        first_delivery_date=record.delivery_date,
        incident_count=record.total_incidents_count,
        deduction_total=max(record.deduction_amount, 0.0),
        deduction_currency=record.deduction_currency or "USD",
    )


def _merge(aggregate: ProductAggregate, record: RawRecord) -> None:
    aggregate.records.append(record)

    # YYYY-MM-DD strings: lexicographic order is chronological order.
    if record.delivery_date and (
        not aggregate.first_delivery_date
        or record.delivery_date < aggregate.first_delivery_date
    ):
        aggregate.first_delivery_date = record.delivery_date

    # The incident total is repeated on every row of a product; never sum it.
    if record.total_incidents_count > aggregate.incident_count:
        aggregate.incident_count = record.total_incidents_count

    # One row per purchase order, so deductions do add up.
    if record.deduction_amount > 0:
        aggregate.deduction_total += record.deduction_amount


def group_by_product(records: Iterable[RawRecord]) -> dict[str, ProductAggregate]:
    """
    Group records by product ID, preserving first-seen order.

    Records without a product ID cannot be attributed and are skipped.
    """
    groups: dict[str, ProductAggregate] = {}

    for record in records:
        if not record.product_id:
            continue

        aggregate = groups.get(record.product_id)
        if aggregate is None:
            groups[record.product_id] = _seed(record)
        else:
            _merge(aggregate, record)

    return groups
