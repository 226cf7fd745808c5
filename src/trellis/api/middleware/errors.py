"""
Error-handling middleware -- maps trellis errors to RFC 7807 responses.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from trellis.api.schemas.common import ErrorDetail, ProblemDetail
from trellis.core.errors import (
    AuthenticationError,
    ErrorCategory,
    RequestValidationError,
    TrellisError,
)
from trellis.framework.logging import get_logger

log = get_logger(__name__)

# ── Error category → HTTP status mapping ─────────────────────────────────

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.AUTH: 403,
    ErrorCategory.CONFIG: 500,
    ErrorCategory.INTERNAL: 500,
}


def status_for_error(error: TrellisError) -> int:
    """Resolve a trellis error to an HTTP status, defaulting to 500."""
    if isinstance(error, AuthenticationError):
        return 401
    return CATEGORY_TO_STATUS.get(error.category, 500)


def _debug(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is not None and settings.debug)


def problem_response(
    *,
    status: int,
    title: str | None = None,
    detail: str = "",
    instance: str = "",
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(
        title=title or HTTPStatus(status).phrase,
        status=status,
        detail=detail,
        instance=instance,
    )
    if errors:
        body.errors = [ErrorDetail(**e) for e in errors]
    return JSONResponse(status_code=status, content=body.model_dump())


async def trellis_error_handler(request: Request, exc: TrellisError) -> JSONResponse:
    """Map a TrellisError raised by a pipeline stage to a problem response."""
    status = status_for_error(exc)
    errors = None
    if isinstance(exc, RequestValidationError):
        errors = [
            {"code": issue.code, "message": issue.message, "field": issue.path or None}
            for issue in exc.issues
        ]
    if status >= 500:
        log.error("request_failed", error=exc.to_dict(), path=request.url.path)
        detail = exc.message if _debug(request) else "An unexpected error occurred."
    else:
        log.warning("request_rejected", category=exc.category.value, status=status, path=request.url.path)
        detail = exc.message
    return problem_response(status=status, detail=detail, instance=str(request.url), errors=errors)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions -- returns 500 with ProblemDetail."""
    log.error("request_crashed", error_type=type(exc).__name__, path=request.url.path, exc_info=exc)
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if _debug(request) else "An unexpected error occurred.",
        instance=str(request.url),
    )


def install_error_handlers(app: FastAPI) -> None:
    """Register the trellis exception handlers on ``app``."""
    app.add_exception_handler(TrellisError, trellis_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
