"""
Structured logging configuration using structlog.

JSON lines in production, coloured console output elsewhere. Every event
carries the request id bound by the middleware and the storage backend the
process runs on. Guest phone numbers are masked before rendering.
"""

import logging
import sys

import structlog
from structlog.typing import EventDict

from seating.core.config import get_settings

MASKED_FIELDS = ("phone",)


def mask_contact_details(logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Keep the last two digits of a phone number."""
    for field in MASKED_FIELDS:
        value = event_dict.get(field)
        if isinstance(value, str) and value:
            event_dict[field] = "*" * max(len(value) - 2, 0) + value[-2:]
    return event_dict


def add_service_context(logger, method_name: str, event_dict: EventDict) -> EventDict:
    settings = get_settings()
    event_dict.setdefault("storage", settings.STORAGE_BACKEND)
    return event_dict


def setup_logging() -> None:
    settings = get_settings()

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_service_context,
        mask_contact_details,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.ENVIRONMENT == "production":
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

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
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ]
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Per-request access lines come from RequestLoggingMiddleware
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
