"""Declarative handler configuration: the builder and the finalized descriptor.

Manifesto:
    An endpoint is declared once, at import time, as a chain of calls:

        Handler.route("GET /users/:id")
            .description("Fetch a user")
            .validate_params({...})
            .handler(get_user)
            .build()

    The chain mutates a ``HandlerBuilder``.  ``build()`` is the single,
    explicit finalize step: it checks that an implementation exists and
    returns a frozen ``HandlerDescriptor`` that every request shares without
    copying.  Nothing is finalized implicitly.

Tags:
    trellis-core, framework, handler, builder, declaration

Doc-Types:
    api-reference
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from trellis.core.errors import HandlerConfigError
from trellis.framework.logging import get_logger
from trellis.framework.schema import FieldGroup, JSONSchema, ValidatorSchema, declare_validator, snapshot_schema

if TYPE_CHECKING:
    from trellis.framework.context import RequestContext

log = get_logger(__name__)

# Stages may be plain functions or coroutine functions.
StageFn = Callable[["RequestContext"], Awaitable[Any] | Any]
Evaluator = Callable[[dict[str, Any]], Awaitable[Any] | Any]
RequestMutator = Callable[[Any], Awaitable[Any] | Any]


class HandlerKind(str, Enum):
    """What triggers the endpoint."""

    ROUTE = "route"
    EVENT = "event"
    CRON = "cron"
    TASK = "task"


@dataclass(frozen=True)
class HandlerVersion:
    """One versioned implementation."""

    label: str
    handler: StageFn


@dataclass(frozen=True)
class ResponseSchema:
    """A documented response."""

    status_code: int
    schema: JSONSchema


@dataclass(frozen=True, eq=False)
class HandlerDescriptor:
    """
    Finalized, read-only configuration of one endpoint.

    Produced by ``HandlerBuilder.build()``.  Collections are tuples and the
    validator table is a read-only mapping, so a descriptor can be shared by
    any number of concurrent pipeline runs.
    """

    kind: HandlerKind
    identifier: str
    label: str | None = None
    middleware: StageFn | None = None
    evaluator: Evaluator | None = None
    before_hooks: tuple[StageFn, ...] = ()
    versions: tuple[HandlerVersion, ...] = ()
    base_handler: StageFn | None = None
    validators: Mapping[FieldGroup, ValidatorSchema] = field(default_factory=lambda: MappingProxyType({}))
    request_mutator: RequestMutator | None = None
    triggers: tuple[str, ...] = ()
    invokes: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    description: str | None = None
    cached: bool = False
    responses: tuple[ResponseSchema, ...] = ()

    @property
    def key(self) -> tuple[HandlerKind, str]:
        """Registry key: kind plus identifier."""
        return (self.kind, self.identifier)

    @property
    def version_labels(self) -> list[str]:
        return [version.label for version in self.versions]

    def validator(self, group: FieldGroup | str) -> ValidatorSchema | None:
        return self.validators.get(FieldGroup(group))

    def __repr__(self) -> str:
        return f"HandlerDescriptor(kind={self.kind.value!r}, identifier={self.identifier!r})"


def _version_handler(label: str, target: Any) -> StageFn:
    """Accept a callable, or a module/object exposing ``handler``."""
    if inspect.ismodule(target) or not callable(target):
        handler = getattr(target, "handler", None)
        if not callable(handler):
            raise TypeError(f"Version {label!r} must be a callable or expose a callable 'handler'")
        return handler
    return target


class HandlerBuilder:
    """
    Mutable, in-progress configuration of one endpoint.

    Every declaration method returns the builder itself so calls chain.
    Call ``build()`` once the chain is complete.
    """

    def __init__(self, kind: HandlerKind | str, identifier: str) -> None:
        self._kind = HandlerKind(kind)
        self._identifier = identifier
        self._label: str | None = None
        self._middleware: StageFn | None = None
        self._evaluator: Evaluator | None = None
        self._before: list[StageFn] = []
        self._versions: list[HandlerVersion] = []
        self._base_handler: StageFn | None = None
        self._validators: dict[FieldGroup, ValidatorSchema] = {}
        self._request_mutator: RequestMutator | None = None
        self._triggers: tuple[str, ...] = ()
        self._invokes: tuple[str, ...] = ()
        self._tags: tuple[str, ...] = ()
        self._description: str | None = None
        self._cached = False
        self._responses: list[ResponseSchema] = []

    @property
    def kind(self) -> HandlerKind:
        return self._kind

    @property
    def identifier(self) -> str:
        return self._identifier

    # ── Pipeline stages ──────────────────────────────────────────

    def use(self, middleware: StageFn) -> HandlerBuilder:
        """Set the composite middleware (replaces any previous one)."""
        self._middleware = middleware
        return self

    def evaluate(self, evaluator: Evaluator) -> HandlerBuilder:
        """Set the state evaluator: feature flags, authentication, authorization."""
        self._evaluator = evaluator
        return self

    def before(self, hook: StageFn) -> HandlerBuilder:
        """Append a hook that runs after validation and before the handler."""
        self._before.append(hook)
        return self

    def version(self, label: str, target: Any) -> HandlerBuilder:
        """Append a versioned implementation.  The last one declared is the latest."""
        self._versions.append(HandlerVersion(label=label, handler=_version_handler(label, target)))
        return self

    def handler(self, fn: StageFn) -> HandlerBuilder:
        """Set the base handler, used when no versions are declared."""
        self._base_handler = fn
        return self

    def mutate_request(self, mutator: RequestMutator) -> HandlerBuilder:
        """Transform the raw request before any other stage runs."""
        self._request_mutator = mutator
        return self

    # ── Validation ───────────────────────────────────────────────

    def validate_body(self, schema: JSONSchema) -> HandlerBuilder:
        return self._validate(FieldGroup.BODY, schema)

    def validate_params(self, schema: JSONSchema) -> HandlerBuilder:
        return self._validate(FieldGroup.PARAMS, schema)

    def validate_headers(self, schema: JSONSchema) -> HandlerBuilder:
        return self._validate(FieldGroup.HEADERS, schema)

    def _validate(self, group: FieldGroup, schema: JSONSchema) -> HandlerBuilder:
        self._validators[group] = declare_validator(group, schema)
        return self

    # ── Documentation ────────────────────────────────────────────

    def expose_as(self, label: str) -> HandlerBuilder:
        """Name used for internal RPC addressing and as the OpenAPI operationId."""
        self._label = label
        return self

    def triggers(self, triggers: Iterable[str]) -> HandlerBuilder:
        self._triggers = tuple(triggers)
        return self

    def invokes(self, invokes: Iterable[str]) -> HandlerBuilder:
        self._invokes = tuple(invokes)
        return self

    def tags(self, tags: Iterable[str]) -> HandlerBuilder:
        self._tags = tuple(tags)
        return self

    def description(self, text: str) -> HandlerBuilder:
        self._description = text
        return self

    def cached(self) -> HandlerBuilder:
        """Mark as cacheable.  Advisory only."""
        self._cached = True
        return self

    def response(self, status_code: int, schema: JSONSchema) -> HandlerBuilder:
        self._responses.append(ResponseSchema(status_code=int(status_code), schema=snapshot_schema(schema)))
        return self

    # ── Finalization ─────────────────────────────────────────────

    def build(self) -> HandlerDescriptor:
        """
        Finalize the declaration.

        Raises:
            HandlerConfigError: Neither a base handler nor any version was declared
        """
        if self._base_handler is None and not self._versions:
            log.error("handler.build.failed", kind=self._kind.value, identifier=self._identifier)
            raise HandlerConfigError(self._kind.value, self._identifier)

        descriptor = HandlerDescriptor(
            kind=self._kind,
            identifier=self._identifier,
            label=self._label,
            middleware=self._middleware,
            evaluator=self._evaluator,
            before_hooks=tuple(self._before),
            versions=tuple(self._versions),
            base_handler=self._base_handler,
            validators=MappingProxyType(dict(self._validators)),
            request_mutator=self._request_mutator,
            triggers=self._triggers,
            invokes=self._invokes,
            tags=self._tags,
            description=self._description,
            cached=self._cached,
            responses=tuple(self._responses),
        )
        log.debug(
            "handler.built",
            kind=self._kind.value,
            identifier=self._identifier,
            versions=descriptor.version_labels,
            before_hooks=len(descriptor.before_hooks),
        )
        return descriptor

    def __repr__(self) -> str:
        return f"HandlerBuilder(kind={self._kind.value!r}, identifier={self._identifier!r})"


class Handler:
    """Entry points of the declaration API, one per handler kind."""

    @staticmethod
    def route(route: str) -> HandlerBuilder:
        """HTTP route, ``"METHOD /path/:param"``."""
        return HandlerBuilder(HandlerKind.ROUTE, route)

    @staticmethod
    def event(event: str) -> HandlerBuilder:
        return HandlerBuilder(HandlerKind.EVENT, event)

    @staticmethod
    def cron(crontab: str) -> HandlerBuilder:
        return HandlerBuilder(HandlerKind.CRON, crontab)

    @staticmethod
    def task(task: str) -> HandlerBuilder:
        return HandlerBuilder(HandlerKind.TASK, task)
