"""Per-request context and the transport contract it wraps.

A ``RequestContext`` is created fresh at the start of every pipeline run and
belongs to that run alone.  Stages fill its slots in order: the request
mutator may merge fields, validation replaces ``body``/``params``/``headers``
with parsed values, and the handler sets ``result`` / ``status_code``.

Tags:
    trellis-core, framework, context, transport

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Request(Protocol):
    """What the engine needs from a transport request.

    Starlette/FastAPI ``Request`` objects satisfy it as-is.
    """

    @property
    def headers(self) -> Mapping[str, str]: ...

    async def json(self) -> Any: ...


def request_headers(request: Any) -> dict[str, str]:
    """Lower-cased copy of the request headers (empty if the request has none)."""
    headers = getattr(request, "headers", None)
    if not headers:
        return {}
    return {str(name).lower(): value for name, value in headers.items()}


def request_params(request: Any) -> dict[str, Any]:
    """Query parameters overlaid with path parameters, when the transport exposes them."""
    params: dict[str, Any] = {}
    for source in ("query_params", "path_params"):
        values = getattr(request, source, None)
        if values:
            params.update(dict(values))
    return params


@dataclass
class RequestContext:
    """
    Mutable state of one pipeline run.

    Slots:
        request: Raw transport request (replaced if the mutator returns a new one)
        state: Bag handed to the evaluator (flags, identity, claims)
        body: Parsed body after validation, otherwise None
        params: Path/query parameters; parsed values after validation
        headers: Lower-cased request headers; parsed values after validation
        version: Label of the version that handled the request, if any
        result: Handler outcome (the handler's return value, or set directly)
        status_code: Optional status for transports that render ``result``
        extras: Fields merged by the request mutator or set by stages
    """

    request: Any
    state: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, Any] = field(default_factory=dict)
    version: str | None = None
    result: Any = None
    status_code: int | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    def merge(self, values: Mapping[str, Any]) -> None:
        """Assign known slots by name; anything else lands in ``extras``."""
        slots = {f.name for f in fields(self)} - {"extras"}
        for key, value in values.items():
            if key in slots:
                setattr(self, key, value)
            else:
                self.extras[key] = value

    def __getitem__(self, key: str) -> Any:
        return self.extras[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.extras[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.extras.get(key, default)
