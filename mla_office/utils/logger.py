# mla_office/utils/logger.py

"""
Structured logging setup.

Every module obtains its logger through `get_logger(__name__)`. Loggers accept
both printf-style arguments and keyword context:

    logger.info("Export job created", export_id=job.id, user_id=user.id)
    logger.warning("Business logic error: %s", e)
"""

# Standard library imports
import logging
import os
import sys

# Third party imports
import structlog

_configured = False


def configure_logging(level: str = None, json_logs: bool = None) -> None:
    """
    Configure structlog on top of the standard library logging module.

    Level and renderer are read from LOG_LEVEL / LOG_JSON when not given, so
    that this module never depends on the settings object (which itself logs).
    """
    global _configured

    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if json_logs is None:
        json_logs = os.getenv("LOG_JSON", "false").lower() in ("1", "true", "yes")

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    _configured = True


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Return a structured logger bound to the given module name."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)
