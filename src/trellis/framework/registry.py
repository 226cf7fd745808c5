"""Handler registry: the explicit mapping from descriptors to transport routes.

Manifesto:
    Declaring a handler never registers it anywhere as a side effect.  A
    ``HandlerRegistry`` is an ordinary value: declaration modules add their
    descriptors to it, and the transport binding asks it to ``bind()`` every
    route through a registration callable.  The mapping from descriptor to
    route is therefore built in one visible place and can be inspected,
    tested and documented.

Examples:
    >>> registry = HandlerRegistry()
    >>> registry.register(Handler.route("GET /ping").handler(lambda ctx: "pong"))
    HandlerDescriptor(kind='route', identifier='GET /ping')
    >>> bound = []
    >>> [b.path for b in registry.bind(lambda method, path, fn: bound.append(method))]
    ['/ping']

Tags:
    trellis-core, framework, registry, routing, registration

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from trellis.core.errors import DuplicateHandlerError, InvalidRouteError
from trellis.framework.context import RequestContext
from trellis.framework.handler import HandlerBuilder, HandlerDescriptor, HandlerKind
from trellis.framework.logging import get_logger
from trellis.framework.pipeline import ExecutionPipeline

log = get_logger(__name__)

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"})

Executable = Callable[..., Awaitable[RequestContext]]
RegisterFn = Callable[[str, str, Executable], Any]
StateFactory = Callable[[Any], Mapping[str, Any] | None]


def parse_route(identifier: str) -> tuple[str, str]:
    """
    Split ``"METHOD /path"`` into ``(METHOD, /path)``.

    Whitespace between the parts is not significant; a bare path means GET.

    Raises:
        InvalidRouteError: Unknown method, missing leading slash or extra parts
    """
    parts = identifier.split()
    if len(parts) == 1:
        method, path = "GET", parts[0]
    elif len(parts) == 2:
        method, path = parts[0].upper(), parts[1]
    else:
        raise InvalidRouteError(identifier, "expected 'METHOD /path'")
    if method not in HTTP_METHODS:
        raise InvalidRouteError(identifier, f"unknown HTTP method {method!r}")
    if not path.startswith("/"):
        raise InvalidRouteError(identifier, "path must start with '/'")
    return method, path


@dataclass(frozen=True)
class RouteBinding:
    """One route handed to the transport."""

    method: str
    path: str
    descriptor: HandlerDescriptor
    executable: Executable


class HandlerRegistry:
    """Ordered collection of finalized descriptors, keyed by kind and identifier."""

    def __init__(self) -> None:
        self._handlers: dict[tuple[HandlerKind, str], HandlerDescriptor] = {}

    def register(self, handler: HandlerDescriptor | HandlerBuilder) -> HandlerDescriptor:
        """
        Add a descriptor, finalizing builders first.

        Raises:
            HandlerConfigError: A builder has no implementation
            DuplicateHandlerError: The kind/identifier pair is already registered
        """
        descriptor = handler.build() if isinstance(handler, HandlerBuilder) else handler
        if descriptor.key in self._handlers:
            raise DuplicateHandlerError(descriptor.kind.value, descriptor.identifier)
        self._handlers[descriptor.key] = descriptor
        log.debug(
            "handler.registered",
            kind=descriptor.kind.value,
            identifier=descriptor.identifier,
            label=descriptor.label,
        )
        return descriptor

    def get(self, kind: HandlerKind | str, identifier: str) -> HandlerDescriptor:
        key = (HandlerKind(kind), identifier)
        if key not in self._handlers:
            available = ", ".join(f"{k.value}:{i}" for k, i in self._handlers)
            raise KeyError(f"Handler '{key[0].value}:{identifier}' not found. Available: {available}")
        return self._handlers[key]

    def list_handlers(self, kind: HandlerKind | str | None = None) -> list[HandlerDescriptor]:
        """Descriptors in registration order, optionally filtered by kind."""
        if kind is None:
            return list(self._handlers.values())
        wanted = HandlerKind(kind)
        return [d for d in self._handlers.values() if d.kind is wanted]

    def routes(self) -> list[HandlerDescriptor]:
        return self.list_handlers(HandlerKind.ROUTE)

    def clear(self) -> None:
        """Clear registry (for testing)."""
        self._handlers.clear()

    def bind(
        self,
        register: RegisterFn,
        pipeline: ExecutionPipeline | None = None,
        state_factory: StateFactory | None = None,
    ) -> list[RouteBinding]:
        """
        Hand every route to the transport.

        ``register(method, path, executable)`` is called once per route.
        ``executable(request, params=None, state=None)`` runs the pipeline and
        returns the populated RequestContext.  When ``state`` is omitted,
        ``state_factory(request)`` seeds it.

        Raises:
            InvalidRouteError: A route identifier is not ``"METHOD /path"``
        """
        pipeline = pipeline or ExecutionPipeline()
        bindings = []
        for descriptor in self.routes():
            method, path = parse_route(descriptor.identifier)
            executable = _executable(pipeline, descriptor, state_factory)
            register(method, path, executable)
            bindings.append(RouteBinding(method, path, descriptor, executable))
            log.info("route.bound", method=method, path=path, label=descriptor.label)
        return bindings

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[HandlerDescriptor]:
        return iter(list(self._handlers.values()))

    def __contains__(self, key: object) -> bool:
        if isinstance(key, HandlerDescriptor):
            return self._handlers.get(key.key) is key
        return key in self._handlers


def _executable(
    pipeline: ExecutionPipeline,
    descriptor: HandlerDescriptor,
    state_factory: StateFactory | None,
) -> Executable:
    async def execute(
        request: Any,
        params: Mapping[str, Any] | None = None,
        state: Mapping[str, Any] | None = None,
    ) -> RequestContext:
        if state is None and state_factory is not None:
            state = state_factory(request)
        return await pipeline.execute(descriptor, request, state, params=params)

    execute.__name__ = descriptor.label or f"{descriptor.kind.value}_handler"
    execute.__qualname__ = execute.__name__
    return execute
