"""Structured logging for deployments.

Logs go to stderr: tool callers commonly talk to this process over stdout.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars

REDACTED = "[REDACTED]"

# Presigned URLs carry their signature in the query string.
SENSITIVE_KEYS = frozenset(
    {
        "secret",
        "secret_key",
        "secretkey",
        "access_key",
        "accesskey",
        "token",
        "authorization",
        "x-auth-token",
        "x_auth_token",
        "upload_url",
        "download_url",
    }
)


def _redact_sensitive(_, __, event_dict: dict) -> dict:
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structlog and the stdlib root logger.

    ``log_format`` is ``json`` for machine-readable lines, anything else
    renders for a terminal.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_sensitive,
    ]
    if log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def bind_deployment_context(function_name: Optional[str] = None, namespace_name: Optional[str] = None) -> None:
    """Set the correlation fields for subsequent log lines in this context.

    A field passed as None is unbound so a previous deployment's value does not
    leak into the next one run from the same task.
    """
    for key, value in (("function_name", function_name), ("namespace_name", namespace_name)):
        if value:
            bind_contextvars(**{key: value})
        else:
            unbind_contextvars(key)
