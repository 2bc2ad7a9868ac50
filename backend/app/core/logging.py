"""
Structured logging setup.

All application modules log through structlog with event-style names:

    logger = get_logger(__name__)
    logger.info("unsubscribe_applied", user_id=42, scope="weekly")

Output format follows LOG_FORMAT:
- json: one JSON object per line (production, log aggregation)
- text: colourised key=value console output (local development)

Stdlib loggers (uvicorn, sqlalchemy) are routed through the
same processors so every line shares one format.
"""

import logging
import sys

import structlog

from app.core.config import settings

_configured = False


def setup_logging() -> None:
    """Configure structlog and the stdlib root logger. Safe to call twice."""
    global _configured
    if _configured:
        return

    level = getattr(logging, settings.LOG_LEVEL)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.LOG_FORMAT == "json":
        renderer = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # SQL echo is controlled by DB_ECHO, not by the root level
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the given module name."""
    return structlog.get_logger(name)
