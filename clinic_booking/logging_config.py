"""Structured logging for the booking client.

JSON lines on stderr (stdout belongs to the interactive prompts), one event per
backend call tagged with its X-Request-ID. Bearer tokens and OTP codes never
reach the log: ``redact_secrets`` masks them wherever they appear in an event.
"""
import logging
import sys
import uuid
from typing import Any, Dict

import structlog

REDACTED = "[REDACTED]"
SECRET_KEYS = frozenset({"token", "otp", "code", "authorization"})

# Chatty transport loggers kept at WARNING unless the client runs at DEBUG
QUIET_LOGGERS = ("urllib3", "werkzeug")


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in SECRET_KEYS and item else _redact(item)
            for key, item in value.items()
        }
    return value


def redact_secrets(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """structlog processor: mask token/OTP values, including inside dicts (e.g. headers)."""
    return _redact(event_dict)


def setup_structured_logging(log_level: str = "INFO"):
    """
    Configure structlog over the standard library.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
        force=True
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structlog logger for a module (pass ``__name__``)."""
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """Id for the X-Request-ID header: ``req-`` plus 12 hex characters."""
    return f"req-{uuid.uuid4().hex[:12]}"


class RequestIDMiddleware:
    """WSGI middleware that echoes the caller's X-Request-ID (or issues one)."""

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        request_id = environ.get('HTTP_X_REQUEST_ID') or generate_request_id()
        environ['REQUEST_ID'] = request_id

        def custom_start_response(status, headers, exc_info=None):
            headers.append(('X-Request-ID', request_id))
            return start_response(status, headers, exc_info)

        return self.app(environ, custom_start_response)
