"""Utils module for Supplier Quality Insights."""

from supplier_quality.utils.logger import (
    LogContext,
    configure_from_settings,
    get_logger,
    setup_logging,
)

__all__ = [
    "LogContext",
    "configure_from_settings",
    "get_logger",
    "setup_logging",
]
