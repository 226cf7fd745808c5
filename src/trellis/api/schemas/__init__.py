"""API schemas package.

Manifesto:
    Pydantic schemas define the error contract of the HTTP binding.
    Handler payloads are described by JSON Schema on the descriptors,
    not here.

Tags:
    trellis-core, api, schemas, pydantic, errors

Doc-Types:
    api-reference
"""

from trellis.api.schemas.common import ErrorDetail, ProblemDetail

__all__ = ["ErrorDetail", "ProblemDetail"]
