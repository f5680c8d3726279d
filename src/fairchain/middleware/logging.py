"""Structured logging with structlog, routed through the stdlib root logger."""

import logging

import structlog

from fairchain.config import Settings


def setup_logging(settings: Settings) -> None:
    """Configure structlog once at startup.

    ``log_format="json"`` emits one JSON object per line; anything else uses
    the colored console renderer.
    """
    json_output = settings.log_format == "json"
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    exc_processor: structlog.types.Processor = (
        structlog.processors.dict_tracebacks if json_output else structlog.processors.StackInfoRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            exc_processor,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=level)
    # SQL statements only in debug.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.debug else logging.WARNING)
