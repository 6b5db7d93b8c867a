"""
Structured logging configuration using structlog.

JSON lines in production, pretty console output in development. Logs go to stdout;
the process manager handles persistence.
"""

import logging
import sys

import structlog

from reportgate.config import Settings, settings


def setup_logging(config: Settings = settings) -> None:
    """
    Configure structlog and stdlib logging integration.

    Call this once at application startup.
    """
    level = getattr(logging, config.log_level.upper())

    if config.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # stdlib loggers (APScheduler, SQLAlchemy, uvicorn) share stdout
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
