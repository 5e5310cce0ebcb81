"""structlog setup.

Learn: Every module does `logger = structlog.get_logger()` and logs
dotted event names with keyword fields:

    logger.info("relay.broadcast", attempted=3, failed=0)

configure_logging() decides how those events are rendered: coloured
console lines in development, one JSON object per line when
WSRELAY_LOG_JSON is set. Request and connection context (request_id,
connection_id) comes from structlog's contextvars.
"""

import logging
import sys

import structlog

from wsrelay.config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure structlog and the stdlib root logger (uvicorn logs there)."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )

    if settings.log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
