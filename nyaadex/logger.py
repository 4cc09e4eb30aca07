"""Structured logging for nyaadex.

Modules log through ``get_logger(__name__)``. Nothing is configured at
import time, so an application embedding nyaadex keeps its own logging
setup. Applications that want nyaadex's formatted output call
``configure_logging()`` once: JSON lines in production, a console renderer
in development, credentials masked in both.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from nyaadex.config import settings

PACKAGE_LOGGER = "nyaadex"
HANDLER_NAME = "nyaadex-structlog"

# Substrings of event keys whose values are masked
SENSITIVE_KEYS = ("token", "password", "api_key", "passkey", "secret", "authorization", "cookie")


def _is_sensitive(key: str) -> bool:
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)


def _mask(key: str, value: Any) -> Any:
    if _is_sensitive(key):
        return "***"
    if isinstance(value, dict):
        return {k: _mask(k, v) for k, v in value.items()}
    if isinstance(value, list):
        return [_mask(key, item) if isinstance(item, dict) else item for item in value]
    return value


def censor_sensitive_data(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask values whose key names a credential.

    Private index mirrors may embed passkeys or cookies in request headers,
    which end up in request logs.
    """
    return {key: _mask(key, value) for key, value in event_dict.items()}


def configure_logging(level: str | None = None, json_output: bool | None = None) -> logging.Handler:
    """Route nyaadex log events through the structlog processor chain.

    Only the ``nyaadex`` logger hierarchy gets a handler; the root logger and
    handlers installed by the host application are left alone. Calling it
    again replaces the handler from the previous call.

    Args:
        level: Log level name (settings value by default).
        json_output: Render JSON lines (default: in production).

    Returns:
        The installed handler.
    """
    level_name = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.is_production

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        censor_sensitive_data,
    ]

    if json_output:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    # Module-level loggers are created before this runs, so they must not be cached
    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(package_logger.handlers):
        if existing.get_name() == HANDLER_NAME:
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(level_name)
    package_logger.propagate = False

    return handler


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger for a nyaadex module.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("nyaa_search_results", count=12)
    """
    return structlog.get_logger(name)
