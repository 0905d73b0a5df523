"""
Supplier Quality Insights - CLI Entry Point.
Command line access to the catalog using Click and Rich.
"""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from supplier_quality import __version__
from supplier_quality.analyzers.insight_synthesizer import format_currency
from supplier_quality.config.settings import Settings, get_settings
from supplier_quality.models.schemas import Program, Severity
from supplier_quality.pipeline.catalog_builder import filter_evidence, program_breakdown
from supplier_quality.pipeline.provider import CatalogProvider
from supplier_quality.utils.formatters import ReportFormatter
from supplier_quality.utils.logger import configure_from_settings, setup_logging

# Initialize Rich Console
console = Console()

SEVERITY_STYLES = {
    Severity.CRITICAL.value: "bold red",
    Severity.HIGH.value: "yellow",
    Severity.MEDIUM.value: "cyan",
    Severity.LOW.value: "dim",
}

# =============================================================================
# Helper Functions
# =============================================================================

def setup_logger(settings: Settings, verbose: bool) -> None:
    """Configure logging based on verbosity; quiet unless asked."""
    if verbose:
        configure_from_settings(settings, verbose=True)
    else:
        setup_logging(level="WARNING", json_format=settings.log_json)


def get_provider(ctx: click.Context) -> CatalogProvider:
    return ctx.obj["provider"]


def warn_if_degraded(provider: CatalogProvider) -> None:
    if provider.snapshot.degraded:
        console.print(
            f"[yellow]Warning: source '{provider.snapshot.source}' could not be read; "
            "catalog is empty.[/yellow]"
        )


def fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    sys.exit(1)

# =============================================================================
# CLI Group
# =============================================================================

@click.group()
@click.version_option(version=__version__)
@click.option('--source', type=click.Path(dir_okay=False), default=None, help='Incident export CSV (overrides SOURCE_CSV_PATH)')
@click.option('--verbose', is_flag=True, help='Detailed logging')
@click.pass_context
def cli(ctx: click.Context, source: Optional[str], verbose: bool):
    """Supplier Quality Insights"""
    ctx.ensure_object(dict)
    settings = ctx.obj.get("settings") or get_settings()
    if source:
        settings = settings.model_copy(update={"source_csv_path": Path(source)})
    ctx.obj["settings"] = settings
    setup_logger(settings, verbose)

    if "provider" not in ctx.obj:
        ctx.obj["provider"] = CatalogProvider(settings)

# =============================================================================
# Commands
# =============================================================================

@cli.command()
@click.pass_context
def kpis(ctx: click.Context):
    """Show fleet-wide quality KPIs."""
    provider = get_provider(ctx)
    warn_if_degraded(provider)
    metrics = provider.get_kpis()

    table = Table(title="Quality KPIs", show_header=False)
    table.add_row("Critical SKUs", str(metrics.critical_products))
    table.add_row("Photos Analyzed", f"{metrics.photos_analyzed:,}")
    table.add_row("Financial Exposure", format_currency(metrics.financial_exposure))
    table.add_row("Suppliers Affected", str(metrics.suppliers_affected))
    table.add_row("Avg Incident Rate", f"{metrics.avg_incident_rate:.1f}%")
    table.add_row("Total Evidence", f"{metrics.total_evidence:,}")
    console.print(table)


@cli.command()
@click.option('--critical-only', is_flag=True, help='Only critical products')
@click.option('--limit', default=20, show_default=True, type=click.IntRange(min=1), help='Rows to show')
@click.pass_context
def products(ctx: click.Context, critical_only: bool, limit: int):
    """List catalog products, critical first."""
    provider = get_provider(ctx)
    warn_if_degraded(provider)
    rows = provider.list_products()
    if critical_only:
        rows = [p for p in rows if p.is_critical]

    if not rows:
        console.print("[dim]No products found.[/dim]")
        return

    table = Table(title=f"Products ({len(rows)})", show_header=True, header_style="bold magenta")
    table.add_column("SKU")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Rate", justify="right")
    table.add_column("Photos", justify="right")
    table.add_column("Exposure", justify="right")

    for product in rows[:limit]:
        status = "[red]Critical[/red]" if product.is_critical else "[green]Monitoring[/green]"
        table.add_row(
            product.sku,
            product.name,
            status,
            f"{product.incident_rate:.1f}%",
            str(product.photo_volume),
            format_currency(product.financial_exposure),
        )
    console.print(table)


@cli.command()
@click.argument('product_id')
@click.option('--program', type=click.Choice([p.value for p in Program]), default=None, help='Filter evidence by program')
@click.option('--severity', type=click.Choice([s.value for s in Severity]), default=None, help='Filter evidence by severity')
@click.pass_context
def show(ctx: click.Context, product_id: str, program: Optional[str], severity: Optional[str]):
    """
    Show one product with its evidence.

    PRODUCT_ID: Catalog id or SKU
    """
    provider = get_provider(ctx)
    warn_if_degraded(provider)
    product = provider.get_product(product_id)
    if product is None:
        fail(f"SKU not found: {product_id}")

    console.print(Panel.fit(
        f"[bold]{product.name}[/bold] ({product.sku})\n"
        f"{product.ai_insight}\n\n"
        f"{product.ai_root_cause}\n\n"
        f"Defect types: [cyan]{', '.join(product.ai_defect_types)}[/cyan]\n"
        f"Programs flagged: {', '.join(product.programs_flagged) or 'None'}",
        title="[red]Critical[/red]" if product.is_critical else "Monitoring",
    ))

    breakdown = program_breakdown(product)
    if breakdown:
        console.print("Evidence by program: " + ", ".join(f"{k} ({v})" for k, v in breakdown.items()))

    items = filter_evidence(product, program=program, severity=severity)
    if not items:
        console.print("[dim]No evidence found for the selected filters.[/dim]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Date")
    table.add_column("Severity")
    table.add_column("Program")
    table.add_column("Defect")
    table.add_column("Note")
    for item in items:
        style = SEVERITY_STYLES.get(item.severity, "")
        table.add_row(
            item.id,
            item.date,
            f"[{style}]{item.severity}[/{style}]" if style else item.severity,
            item.program,
            item.defect_type,
            item.note,
        )
    console.print(table)


@cli.command(name="top-issues")
@click.option('--limit', default=5, show_default=True, type=click.IntRange(min=1), help='Rows to show')
@click.pass_context
def top_issues(ctx: click.Context, limit: int):
    """Products with the most photo evidence."""
    provider = get_provider(ctx)
    warn_if_degraded(provider)
    issues = provider.top_issues(limit)
    if not issues:
        console.print("[dim]No products found.[/dim]")
        return

    table = Table(title="Top Issues", show_header=True, header_style="bold magenta")
    table.add_column("Product")
    table.add_column("SKU")
    table.add_column("Issues", justify="right")
    table.add_column("Top Defects")
    table.add_column("Severity")
    for issue in issues:
        table.add_row(
            issue.product_name,
            issue.product_id,
            str(issue.issue_count),
            ", ".join(issue.top_defect_types),
            issue.severity,
        )
    console.print(table)


@cli.command()
@click.option('--format', 'format_type', type=click.Choice(['markdown', 'html', 'json']), default=None, help='Output format (defaults to REPORT_FORMAT)')
@click.option('--output-dir', type=click.Path(file_okay=False), default=None, help='Custom output directory')
@click.pass_context
def report(ctx: click.Context, format_type: Optional[str], output_dir: Optional[str]):
    """Write a supplier quality report."""
    settings: Settings = ctx.obj["settings"]
    provider = get_provider(ctx)
    warn_if_degraded(provider)

    try:
        formatter = ReportFormatter(Path(output_dir) if output_dir else settings.output_dir)
        path = formatter.generate_report(provider.snapshot, format_type or settings.report_format)
    except (OSError, ValueError) as e:
        fail(str(e))

    console.print(f"[green]✓[/green] Report written to {path}")


@cli.command()
@click.option('--host', default=None, help='Bind address (defaults to API_HOST)')
@click.option('--port', default=None, type=int, help='Port (defaults to API_PORT)')
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]):
    """Serve the read-only HTTP API."""
    import uvicorn

    from supplier_quality.api.app import create_app

    settings: Settings = ctx.obj["settings"]
    app = create_app(get_provider(ctx))
    console.print(f"[bold blue]Serving catalog API[/bold blue] on {host or settings.api_host}:{port or settings.api_port}")
    uvicorn.run(app, host=host or settings.api_host, port=port or settings.api_port, log_config=None)

if __name__ == "__main__":
    cli()
