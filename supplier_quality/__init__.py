"""
Supplier Quality Insights.

Turns an incident/return export into a per-product quality catalog with
keyword-derived severity, defect tags and root-cause narratives, served
through a CLI, a read-only HTTP API and exportable reports.
"""

__version__ = "1.0.0"
__author__ = "Supplier Quality Team"

# Lazy imports to avoid circular dependencies
def get_provider():
    """Get the CatalogProvider class (lazy import)."""
    from supplier_quality.pipeline.provider import CatalogProvider
    return CatalogProvider

__all__ = ["get_provider", "__version__"]
