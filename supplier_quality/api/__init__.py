"""Read-only HTTP API over the catalog."""

from supplier_quality.api.app import create_app, get_provider

__all__ = ["create_app", "get_provider"]
