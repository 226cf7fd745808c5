"""
Logging configuration.

Provides a single entry point for configuring structured logging.
Configuration is read from ``TrellisSettings`` (and so from the environment):

- TRELLIS_LOG_LEVEL: DEBUG | INFO | WARNING | ERROR (default: INFO)
- TRELLIS_LOG_FORMAT: json | console (default: console)
- TRELLIS_SERVICE_NAME: value of ``service.name`` on every event

Usage:
    # Configure at application startup
    from trellis.framework.logging import configure_logging
    configure_logging()

    # Or with explicit settings
    configure_logging(level="DEBUG", format="json")
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor

from trellis.core.settings import get_settings
from trellis.framework.logging.context import add_context_processor

# Track if logging has been configured
_configured = False


def _service_processor(service: str) -> Processor:
    def add_service_metadata(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", service)
        return event_dict

    return add_service_metadata


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
    service: str | None = None,
    force: bool = False,
) -> None:
    """
    Configure structured logging for the application.

    Should be called once at application startup (app factory, CLI entry).
    Subsequent calls are no-ops unless force=True.

    Args:
        level: Log level (overrides TRELLIS_LOG_LEVEL)
        format: Output format (overrides TRELLIS_LOG_FORMAT)
        service: Service name (overrides TRELLIS_SERVICE_NAME)
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    settings = get_settings()
    log_level = (level or settings.log_level).upper()
    log_format = (format or settings.log_format).lower()

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_context_processor,
        _service_processor(service or settings.service_name),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
        force=True,
    )
    logging.getLogger("trellis").setLevel(getattr(logging, log_level))

    _configured = True


def is_debug_enabled() -> bool:
    """Check if DEBUG level logging is enabled."""
    return logging.getLogger("trellis").isEnabledFor(logging.DEBUG)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured
