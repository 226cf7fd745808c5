"""Per-request execution pipeline.

Manifesto:
    Every request to a declared endpoint runs the same fixed sequence of
    optional stages, so handler code never re-implements validation,
    authentication or version negotiation:

        1. request mutation   descriptor.request_mutator(request)
        2. middleware         descriptor.middleware(context)
        3. evaluation         descriptor.evaluator(context.state)
        4. validation         body, then params, then headers
        5. before-hooks       in declaration order
        6. handler            VersionResolver picks; it runs on the context

    Stages run strictly one after another; a stage that returns an awaitable
    is awaited before the next one starts.  The first stage that raises ends
    the run: the error is logged with the endpoint's kind and identifier and
    re-raised unchanged.  Nothing is retried and no partial context is
    returned.

Tags:
    trellis-core, framework, pipeline, execution, lifecycle

Doc-Types:
    api-reference
"""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any

from trellis.core.errors import RequestValidationError
from trellis.framework.context import RequestContext, request_headers, request_params
from trellis.framework.handler import HandlerDescriptor
from trellis.framework.logging import (
    bind_context,
    generate_request_id,
    get_context,
    get_logger,
    log_step,
    push_context,
)
from trellis.framework.schema import FieldGroup
from trellis.framework.versions import VersionResolver

log = get_logger(__name__)


async def call_stage(fn: Any, *args: Any) -> Any:
    """Call a sync or async stage function and return its (awaited) result."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _enter_stage(stage: str, **fields: Any) -> None:
    bind_context(stage=stage, **fields)
    log.debug("pipeline.stage", stage=stage, **fields)


async def read_body(request: Any) -> Any:
    """Full-body read through the transport; unreadable or empty bodies become ``{}``."""
    reader = getattr(request, "json", None)
    if reader is None:
        return {}
    try:
        return await call_stage(reader)
    except Exception as e:
        log.debug("pipeline.body.unreadable", error_type=type(e).__name__, error=str(e))
        return {}


class ExecutionPipeline:
    """
    Runs descriptors against inbound requests.

    Holds no per-request state; one instance can serve any number of
    concurrent runs.
    """

    def __init__(self, resolver: VersionResolver | None = None) -> None:
        self.resolver = resolver or VersionResolver()

    async def execute(
        self,
        descriptor: HandlerDescriptor,
        request: Any,
        initial_state: Mapping[str, Any] | None = None,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> RequestContext:
        """
        Run every configured stage for one request.

        Args:
            descriptor: Finalized endpoint configuration
            request: Transport request (``headers`` mapping, ``async json()``)
            initial_state: Seed for ``context.state`` (copied, never mutated)
            params: Path/query parameters; defaults to what the request exposes

        Returns:
            The populated RequestContext

        Raises:
            RequestValidationError: A declared validator rejected its field group
            Exception: Whatever a stage raised, unchanged
        """
        context = RequestContext(
            request=request,
            state=dict(initial_state or {}),
            params=dict(params) if params is not None else request_params(request),
            headers=request_headers(request),
        )
        request_id = context.headers.get("x-request-id") or get_context().request_id or generate_request_id()
        token = push_context(
            kind=descriptor.kind.value,
            identifier=descriptor.identifier,
            label=descriptor.label,
            request_id=request_id,
        )
        try:
            with log_step(
                "pipeline.execute",
                level="debug",
                kind=descriptor.kind.value,
                identifier=descriptor.identifier,
            ) as timer:
                await self._run(descriptor, context)
                if context.version is not None:
                    timer.add_metric("version", context.version)
        finally:
            token.restore()
        return context

    async def _run(self, descriptor: HandlerDescriptor, context: RequestContext) -> None:
        if descriptor.request_mutator is not None:
            _enter_stage("mutation")
            mutated = await call_stage(descriptor.request_mutator, context.request)
            # Starlette requests are Mappings over the ASGI scope.
            if isinstance(mutated, Mapping) and not callable(getattr(mutated, "json", None)):
                context.merge(mutated)
            elif mutated is not None and mutated is not context.request:
                context.request = mutated
                context.headers = request_headers(mutated)

        if descriptor.middleware is not None:
            _enter_stage("middleware")
            await call_stage(descriptor.middleware, context)

        if descriptor.evaluator is not None:
            _enter_stage("evaluation")
            await call_stage(descriptor.evaluator, context.state)

        if descriptor.validators:
            _enter_stage("validation")
        await self._validate(descriptor, context)

        for index, hook in enumerate(descriptor.before_hooks):
            _enter_stage("before", hook=index)
            await call_stage(hook, context)

        version = self.resolver.select(descriptor, context)
        handler = version.handler if version is not None else self.resolver.resolve(descriptor, context)
        context.version = version.label if version is not None else None
        _enter_stage("handler", version=context.version)
        outcome = await call_stage(handler, context)
        if outcome is not None:
            context.result = outcome

    async def _validate(self, descriptor: HandlerDescriptor, context: RequestContext) -> None:
        body = descriptor.validator(FieldGroup.BODY)
        if body is not None:
            raw = context.body if context.body is not None else await read_body(context.request)
            result = body.validate(raw)
            if not result.success:
                raise RequestValidationError(FieldGroup.BODY.value, result.issues)
            context.body = result.data

        params = descriptor.validator(FieldGroup.PARAMS)
        if params is not None:
            result = params.validate(context.params)
            if not result.success:
                raise RequestValidationError(FieldGroup.PARAMS.value, result.issues)
            context.params = result.data

        headers = descriptor.validator(FieldGroup.HEADERS)
        if headers is not None:
            result = headers.validate(context.headers)
            if not result.success:
                raise RequestValidationError(FieldGroup.HEADERS.value, result.issues)
            context.headers = result.data
