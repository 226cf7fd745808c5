"""
Trellis Framework Logging - Structured, run-aware logging.

This module provides:
- Structured logging with structlog
- Per-run context propagation via contextvars
- Timing utilities for stage tracking
- Settings-based configuration

Usage:
    from trellis.framework.logging import configure_logging, get_logger, log_step

    # Configure once at startup
    configure_logging()

    # Get a logger
    log = get_logger(__name__)

    # Log with timing
    with log_step("pipeline.execute", kind="route"):
        await run()
"""

from trellis.framework.logging.config import configure_logging, is_configured, is_debug_enabled
from trellis.framework.logging.context import (
    LogContext,
    bind_context,
    clear_context,
    generate_request_id,
    get_context,
    get_logger,
    push_context,
)
from trellis.framework.logging.timing import TimingResult, log_step, timed_block

__all__ = [
    # Configuration
    "configure_logging",
    "is_configured",
    "is_debug_enabled",
    # Context
    "LogContext",
    "bind_context",
    "clear_context",
    "generate_request_id",
    "get_context",
    "get_logger",
    "push_context",
    # Timing
    "TimingResult",
    "log_step",
    "timed_block",
]
