"""Structured logging setup for the Strapi MCP bridge.

Uses structlog for consistent, machine-parseable log output. Everything is
written to stderr because stdout carries the MCP stdio stream.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.types import EventDict, Processor

SENSITIVE_KEYS = {
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "password",
    "secret",
    "token",
}

REDACTED = "[REDACTED]"


def redact_sensitive(value: Any) -> Any:
    """Recursively replace values stored under sensitive keys."""
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in SENSITIVE_KEYS else redact_sensitive(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact_sensitive(item) for item in value]
    return value


def sanitize_event(
    logger: Any, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive keys from the event dict."""
    return redact_sensitive(event_dict)


class TruncateValues:
    """Processor that shortens long string values in the event dict."""

    def __init__(self, max_length: int) -> None:
        self.max_length = max_length

    def __call__(self, logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > self.max_length:
                event_dict[key] = f"{value[:self.max_length]}... [truncated {len(value) - self.max_length} chars]"
        return event_dict


def setup_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    sanitize: bool = True,
    max_length: int = 2000,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render events as JSON lines instead of key=value text
        sanitize: Redact credentials and tokens from log events
        max_length: Maximum length of a single string value in a log event
    """
    level = getattr(logging, log_level.upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if sanitize:
        processors.append(sanitize_event)
    processors.append(TruncateValues(max_length))

    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    # Third-party libraries (httpx, mcp, uvicorn) log through stdlib logging.
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """Return a structlog logger, optionally with values already bound."""
    logger = structlog.get_logger(name)
    return logger.bind(**initial_context) if initial_context else logger


@contextmanager
def call_context(**context: Any) -> Iterator[None]:
    """
    Bind values to every log event emitted inside the block.

    Values are scoped to the current task and restored on exit, so
    concurrent tool calls keep their own context.
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield
