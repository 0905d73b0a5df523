"""
Report formatting utilities.

Renders the catalog snapshot as a supplier quality report in Markdown,
HTML (via markdown2) or a JSON dump of the snapshot.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

import markdown2

from supplier_quality.analyzers.insight_synthesizer import format_currency
from supplier_quality.config.settings import get_settings
from supplier_quality.models.schemas import CatalogKPIs, CatalogSnapshot, ProductRecord
from supplier_quality.pipeline.catalog_builder import program_breakdown
from supplier_quality.utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_FORMATS = ("markdown", "html", "json")
HIGH_RISK_ROWS = 15
DETAILED_PRODUCTS = 10
NAME_WIDTH = 50

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>{title}</title>
<style>
body {{ font-family: -apple-system, system-ui, sans-serif; max-width: 960px; margin: 0 auto; padding: 40px; line-height: 1.6; color: #333; }}
table {{ border-collapse: collapse; width: 100%; margin: 20px 0; }}
th, td {{ border: 1px solid #ddd; padding: 10px; text-align: left; }}
th {{ background-color: #f5f5f5; }}
h1, h2, h3 {{ color: #2c3e50; margin-top: 30px; }}
h1 {{ border-bottom: 2px solid #2c3e50; padding-bottom: 10px; }}
</style>
</head>
<body>
{body}
</body>
</html>
"""


def _cell(value: object) -> str:
    # Pipes would split a markdown table cell.
    return str(value).replace("|", "-")


def format_kpi_table(kpis: CatalogKPIs) -> str:
    """
    Markdown table of the fleet KPIs.

    | Metric | Value |
    |--------|-------|
    | Critical SKUs | 12 |
    """
    rows = [
        f"| Critical SKUs | {kpis.critical_products} |",
        f"| Photos Analyzed | {kpis.photos_analyzed:,} |",
        f"| Financial Exposure | {format_currency(kpis.financial_exposure)} |",
        f"| Suppliers Affected | {kpis.suppliers_affected} |",
        f"| Avg Incident Rate | {kpis.avg_incident_rate:.1f}% |",
        f"| Total Evidence | {kpis.total_evidence:,} |",
    ]
    header = "| Metric | Value |\n|--------|-------|"
    return header + "\n" + "\n".join(rows)


def format_high_risk_table(products: Sequence[ProductRecord]) -> str:
    """
    Markdown table of critical products.

    | Rank | Product | SKU | Incident Rate | Photos | Exposure |
    """
    if not products:
        return "*No critical products.*"

    header = (
        "| Rank | Product | SKU | Incident Rate | Photos | Exposure |\n"
        "|------|---------|-----|---------------|--------|----------|"
    )
    rows = []
    for i, product in enumerate(products, 1):
        name = product.name
        if len(name) > NAME_WIDTH:
            name = name[:NAME_WIDTH] + "..."
        rows.append(
            f"| {i} | {_cell(name)} | {_cell(product.sku)} | {product.incident_rate:.1f}% "
            f"| {product.photo_volume} | {format_currency(product.financial_exposure)} |"
        )
    return header + "\n" + "\n".join(rows)


def format_product_section(product: ProductRecord) -> str:
    """Detail section for one product: insight, root cause, tags, programs."""
    status = "Critical" if product.is_critical else "Monitoring"
    breakdown = program_breakdown(product)
    programs = ", ".join(f"{name} ({count})" for name, count in breakdown.items())

    lines = [
        f"### {_cell(product.name)} ({product.sku})",
        "",
        f"**Status:** {status} | **Insight:** {product.ai_insight}",
        "",
        product.ai_root_cause,
        "",
        f"- Defect types: {', '.join(product.ai_defect_types)}",
        f"- Programs flagged: {', '.join(product.programs_flagged) or 'None'}",
        f"- Evidence by program: {programs or 'No photo evidence'}",
    ]
    if product.po_number:
        lines.append(f"- Purchase order: {product.po_number}")
    return "\n".join(lines)


def generate_quality_report(
    snapshot: CatalogSnapshot,
    high_risk_rows: int = HIGH_RISK_ROWS,
    detailed_products: int = DETAILED_PRODUCTS,
) -> str:
    """
    Generate the complete supplier quality report.

    Structure:
    # Supplier Quality Report
    ## Key Metrics
    ## High-Risk Products
    ## Product Details
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    critical = [p for p in snapshot.products if p.is_critical]
    critical.sort(key=lambda p: -p.incident_rate)

    details = "\n\n".join(
        format_product_section(p) for p in snapshot.products[:detailed_products]
    ) or "*No products in catalog.*"

    notice = ""
    if snapshot.degraded:
        notice = "> Source data could not be read; the catalog below is empty.\n\n"

    return f"""# Supplier Quality Report

{notice}## Key Metrics
{format_kpi_table(snapshot.kpis)}

## High-Risk Products
{format_high_risk_table(critical[:high_risk_rows])}

## Product Details
{details}

---
Generated on: {timestamp}
Data Source: {snapshot.source or 'in-memory export'}
"""


def save_report(report: str, output_path: Path, format: str = "markdown") -> Path:
    """
    Save a Markdown report to file, optionally converting it to HTML.

    Args:
        report: Markdown content
        output_path: Destination path (extension is replaced)
        format: 'markdown' or 'html'

    Raises:
        ValueError: For any other format
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    base_path = output_path.with_suffix("")

    if format == "markdown":
        file_path = base_path.with_suffix(".md")
        file_path.write_text(report, encoding="utf-8")
        logger.info("Saved Markdown report", path=str(file_path))
        return file_path

    if format == "html":
        body = markdown2.markdown(report, extras=["tables", "header-ids"])
        file_path = base_path.with_suffix(".html")
        file_path.write_text(
            HTML_TEMPLATE.format(title="Supplier Quality Report", body=body),
            encoding="utf-8",
        )
        logger.info("Saved HTML report", path=str(file_path))
        return file_path

    raise ValueError(f"Unsupported format: {format}")


class ReportFormatter:
    """Writes timestamped report files for a catalog snapshot."""

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = Path(output_dir or get_settings().output_dir)

    def generate_report(self, snapshot: CatalogSnapshot, format_type: str = "markdown") -> Path:
        """
        Write the report in the requested format.

        Returns:
            Path of the written file

        Raises:
            ValueError: If the format is not one of markdown, html, json
        """
        if format_type not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported format: {format_type}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        output_path = self.output_dir / f"supplier_quality_{timestamp}"

        if format_type == "json":
            file_path = output_path.with_suffix(".json")
            file_path.write_text(snapshot.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
            logger.info("Saved JSON report", path=str(file_path))
            return file_path

        return save_report(generate_quality_report(snapshot), output_path, format_type)
