"""structlog setup for applications embedding the compiler."""

from __future__ import annotations

import logging

import structlog


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    """
    Configure structlog console output.

    The library only emits events through ``structlog.get_logger``; hosts
    call this once at start-up if they want them rendered.
    """
    log_level = "DEBUG" if debug else "INFO" if verbose else "WARNING"

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
