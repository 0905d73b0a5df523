"""
Structured logging configuration.

structlog renders pipeline events; records emitted through the standard
library (uvicorn, fastapi) are routed through the same processor chain so
the CLI, the API server and the pipeline share one output format.
"""

import logging
import sys
from typing import TYPE_CHECKING, Optional

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from supplier_quality.config.settings import Settings

_SHARED_PROCESSORS: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure application-wide structured logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Whether to output logs in JSON format.
        log_file: Optional file path for logging output.
    """
    numeric_level = getattr(logging, level.upper())
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(numeric_level)


def configure_from_settings(settings: "Settings", verbose: bool = False) -> None:
    """Apply the logging section of the application settings."""
    level = "DEBUG" if verbose or settings.debug else settings.log_level
    setup_logging(level=level, json_format=settings.log_json)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger for the given module name.

    Args:
        name: Logger name, typically __name__.

    Returns:
        Configured structlog logger instance.
    """
    return structlog.get_logger(name)


class LogContext:
    """Bind key/value pairs to every log event emitted inside the block."""

    def __init__(self, **kwargs):
        self.context = kwargs
        self._tokens = None

    def __enter__(self):
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._tokens:
            structlog.contextvars.reset_contextvars(**self._tokens)
