"""Structured logging for the facility's own operational messages.

The core modules report their own events (log file unavailable, scheduler
started or stopped, a background check raising) through stdlib loggers.
``configure_logging`` renders those records, and records from structlog
loggers, with one structlog processor chain: JSON for log aggregation or a
console renderer for development.

Example usage:
    from app_tester.core.logging import configure_logging, get_logger

    configure_logging(log_format="console", log_level="INFO")
    logger = get_logger(__name__)
    logger.info("Listing log files", log_dir="Log_Files")
"""

import logging
import sys
from typing import Literal

import structlog
from structlog.types import Processor

INTERNAL_LOGGER_NAME = "app_tester"


def configure_logging(
    log_format: Literal["json", "console"] = "console",
    log_level: str = "WARNING",
) -> None:
    """Configure structured logging.

    Operational messages go to stderr so they never mix with readouts
    routed to stdout.

    Args:
        log_format: Output format - "json" for production, "console" for dev.
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    level = getattr(logging, log_level.upper(), logging.WARNING)

    # Common processors for structlog and stdlib records
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=False,
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    internal = logging.getLogger(INTERNAL_LOGGER_NAME)
    for existing in list(internal.handlers):
        internal.removeHandler(existing)
    internal.addHandler(handler)
    internal.setLevel(level)
    internal.propagate = False


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        A bound logger instance with structured logging support.
    """
    return structlog.get_logger(name)

