"""
Logging context management using contextvars.

Every pipeline run binds the endpoint identity (kind, identifier) and a
request id once; the processor below attaches them to every log entry made
during that run, without passing a logger through the stages.

Design choice: contextvars
- Thread-safe and asyncio-compatible
- Each concurrent pipeline run (asyncio task) sees its own context
- Clean integration with structlog processors
"""

import uuid
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Any

import structlog


def generate_request_id() -> str:
    """Generate a request identifier for runs whose transport supplied none."""
    return uuid.uuid4().hex


@dataclass
class LogContext:
    """
    Execution context attached to all log entries.

    Endpoint identity:
        kind: Handler kind (route, event, cron, task)
        identifier: Route pattern, event name, cron expression or task name
        label: Exposed RPC label, when declared

    Request:
        request_id: Transport request id or a generated one
        version: Version label selected for this run

    Tracing (for nested timing blocks):
        span_id: Current span identifier
        parent_span_id: Parent span for nested operations
        stage: Current pipeline stage
    """

    kind: str | None = None
    identifier: str | None = None
    label: str | None = None

    request_id: str | None = None
    version: str | None = None

    span_id: str | None = None
    parent_span_id: str | None = None
    stage: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs) -> "LogContext":
        """Create new context with merged values."""
        current = asdict(self)
        current.update({k: v for k, v in kwargs.items() if k in current and v is not None})
        return LogContext(**current)


_log_context: ContextVar[LogContext] = ContextVar("trellis_log_context")  # noqa: B039


def get_context() -> LogContext:
    """Get the current log context."""
    return _log_context.get(LogContext())


def bind_context(**kwargs) -> LogContext:
    """Merge values into the current context and return the result."""
    updated = get_context().merge(**kwargs)
    _log_context.set(updated)
    return updated


def clear_context() -> None:
    """Clear the current context (reset to empty)."""
    _log_context.set(LogContext())


class ContextToken:
    """Token for restoring context after a scoped operation."""

    def __init__(self, token):
        self._token = token

    def restore(self):
        """Restore the previous context."""
        _log_context.reset(self._token)


def push_context(**kwargs) -> ContextToken:
    """
    Push new context values, returning a token to restore later.

    Usage:
        token = push_context(kind="route", identifier="GET /users")
        try:
            await run()
        finally:
            token.restore()
    """
    updated = get_context().merge(**kwargs)
    return ContextToken(_log_context.set(updated))


def add_context_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    Structlog processor that adds the run context to every log entry.

    Registered in configure_logging(); explicit event keys win.
    """
    for key, value in get_context().to_dict().items():
        event_dict.setdefault(key, value)
    return event_dict


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)
