"""Structured logging setup (structlog over stdlib logging).

Every record, whether emitted through ``get_logger`` or a plain
``logging.getLogger``, goes through the same processor chain and handler:

- JSON lines when LOG_FORMAT=json, coloured console output otherwise
- request context (request_id, method, path) merged from contextvars
- stdlib ``extra=`` fields lifted into the event
- recipient addresses masked in JSON output

Usage:
    from core import get_logger
    logger = get_logger(__name__)
    logger.info("certificate.rendered", pdf_path="/srv/output/certificate-1.pdf")
"""

import logging
import os
import sys

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars
from structlog.types import EventDict, Processor, WrappedLogger

__all__ = [
    "bind_contextvars",
    "clear_contextvars",
    "configure_logging",
    "get_logger",
    "mask_email",
]

# Event keys that carry a requester's email address
_PII_EMAIL_KEYS = ("recipient", "email")

# Libraries that log per request/connection at INFO
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "aiosmtplib": logging.WARNING,
    "PIL": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def mask_email(address: str) -> str:
    """'asha.verma@example.com' -> 'a***@example.com'."""
    local, sep, domain = address.partition("@")
    if not sep or not local:
        return "***"
    return f"{local[0]}***@{domain}"


def _mask_recipient_emails(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    for key in _PII_EMAIL_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = mask_email(value)
    return event_dict


def _log_level() -> int:
    return getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)


def _json_output() -> bool:
    return os.environ.get("LOG_FORMAT", "").lower() == "json"


def configure_logging() -> None:
    """Install the structlog pipeline on the root logger. Idempotent."""
    use_json = _json_output()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    output_processors: list[Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if use_json:
        output_processors += [
            _mask_recipient_emails,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        output_processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[*shared_processors, structlog.stdlib.ExtraAdder()],
            processors=output_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(_log_level())

    for name, level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Structured logger bound to ``name`` (usually ``__name__``).

    Example:
        logger = get_logger(__name__)
        logger.info("email.sent", recipient="someone@example.com")
    """
    return structlog.stdlib.get_logger(name)
