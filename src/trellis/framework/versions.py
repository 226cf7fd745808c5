"""Version negotiation.

The caller may ask for a specific implementation with a reserved header
(``x-api-version`` by default) or, failing that, a reserved path/query
parameter (``version``).  An exact label match wins.  Otherwise the latest
version runs, where "latest" means the **last one declared**: labels are
never parsed or compared, so declaring ``v2`` before ``v1`` makes ``v1`` the
latest.  Endpoints without versions fall back to their base handler.

Tags:
    trellis-core, framework, versioning, negotiation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any

from trellis.core.errors import HandlerConfigError
from trellis.core.settings import get_settings
from trellis.framework.context import RequestContext, request_headers, request_params
from trellis.framework.handler import HandlerDescriptor, HandlerVersion, StageFn


class VersionResolver:
    """Selects the implementation that serves a request."""

    def __init__(self, header: str | None = None, param: str | None = None) -> None:
        settings = get_settings()
        self.header = (header or settings.version_header).lower()
        self.param = param or settings.version_param

    def requested_version(self, context: RequestContext) -> str | None:
        """Version hint: header first, then parameter."""
        for hint in (
            _lookup(context.headers, self.header),
            request_headers(context.request).get(self.header),
            _lookup(context.params, self.param),
            request_params(context.request).get(self.param),
        ):
            if hint is not None and hint != "":
                return str(hint)
        return None

    def select(self, descriptor: HandlerDescriptor, context: RequestContext) -> HandlerVersion | None:
        """The version entry that should run, or None for the base handler."""
        if not descriptor.versions:
            return None
        requested = self.requested_version(context)
        if requested is not None:
            for version in descriptor.versions:
                if version.label == requested:
                    return version
        return descriptor.versions[-1]

    def resolve(self, descriptor: HandlerDescriptor, context: RequestContext) -> StageFn:
        """
        The handler function for this request.

        Raises:
            HandlerConfigError: The descriptor has neither versions nor a base handler
        """
        version = self.select(descriptor, context)
        if version is not None:
            return version.handler
        if descriptor.base_handler is None:
            raise HandlerConfigError(descriptor.kind.value, descriptor.identifier)
        return descriptor.base_handler


def _lookup(values: Any, key: str) -> Any:
    if not isinstance(values, dict):
        return None
    return values.get(key)
