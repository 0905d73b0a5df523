"""Configuration module for Supplier Quality Insights."""

from supplier_quality.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
