"""
structlog setup for the fiscal review service.

Every event carries the service name and, inside a request, the acting
reviewer's id and role. Events render as JSON lines unless DEBUG is set.
"""

import logging
import sys

import structlog

from fiscal_review.config import settings


def _add_service(logger, method_name, event_dict):
    event_dict.setdefault("service", settings.APP_NAME)
    return event_dict


def setup_logging() -> None:
    """Route structlog and stdlib logging through one stdout handler."""

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.DEBUG:
        render_chain = [structlog.dev.ConsoleRenderer()]
    else:
        # Tracebacks from logger.exception become a string field
        render_chain = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=[
            *shared_processors,
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
            *render_chain,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )


def bind_request_identity(user_id: str, role: str) -> None:
    """Attach the acting identity to every log line of the current request."""
    structlog.contextvars.bind_contextvars(user_id=user_id, role=role)
