"""Request-ID middleware -- injects ``X-Request-ID`` on every request.

Manifesto:
    Every request gets a unique ID so logs and error reports can be
    correlated.  The ID is bound into the logging context before the
    route runs, so pipeline log events carry it too.

Tags:
    trellis-core, api, middleware, request-id, correlation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from trellis.framework.logging import generate_request_id, push_context


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request/response cycle."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        request.state.request_id = request_id
        token = push_context(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            token.restore()
        response.headers["X-Request-ID"] = request_id
        return response
