"""
Common API schemas -- RFC 7807 error envelopes.

Successful responses are whatever the handler put in ``context.result``;
every 4xx/5xx produced by the binding uses :class:`ProblemDetail`.

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Field-level error detail.

    For request validation failures ``field`` is the issue path inside the
    rejected field group (``"age"``, ``"items[2]"``) and ``code`` is the
    keyword that failed (``required``, ``minimum``, ``format`` ...).
    """

    code: str = Field(description="Machine-readable error code (e.g., 'required', 'format')")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Field path if error is field-specific")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Status mapping:
        - ``VALIDATION`` (422): A declared validator rejected the request
        - ``AUTH`` (401): Authentication required or failed
        - ``AUTH`` (403): Authenticated but not allowed, or feature disabled
        - ``CONFIG`` (500): The handler is misconfigured
        - anything else (500): Unexpected server error

    Example:
        {
            "type": "about:blank",
            "title": "Unprocessable Entity",
            "status": 422,
            "detail": "Body validation failed: age: must be >= 18",
            "instance": "http://testserver/users",
            "errors": [{"code": "minimum", "message": "must be >= 18", "field": "age"}]
        }
    """

    type: str = Field(default="about:blank", description="Error type URI (usually 'about:blank')")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code (e.g., 401, 422, 500)")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    errors: list[ErrorDetail] = Field(
        default_factory=list,
        description="List of field-level error details",
    )
