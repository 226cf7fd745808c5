"""
FastAPI binding -- mounts a HandlerRegistry on an application.

Every route descriptor becomes one ``add_api_route`` call.  The endpoint
hands the Starlette request to the execution pipeline and renders the
populated context: a Starlette ``Response`` in ``context.result`` is
returned as-is, anything else is JSON-encoded with ``context.status_code``
(200 when unset).  Errors raised by the pipeline propagate to the app's
exception handlers (see ``trellis.api.middleware.errors``).

The app's OpenAPI document is replaced by the one ``SpecEmitter`` builds
from the same descriptors, so the documented routes are exactly the
declared ones.

Tags:
    trellis-core, api, binding, FastAPI, openapi

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.responses import Response

from trellis.core.settings import TrellisSettings, get_settings
from trellis.framework.context import RequestContext
from trellis.framework.openapi import SpecEmitter, openapi_path
from trellis.framework.pipeline import ExecutionPipeline
from trellis.framework.registry import Executable, HandlerRegistry, RouteBinding, StateFactory


def render(context: RequestContext) -> Response:
    """Turn a populated context into a Starlette response."""
    if isinstance(context.result, Response):
        return context.result
    return JSONResponse(jsonable_encoder(context.result), status_code=context.status_code or 200)


def _endpoint(executable: Executable) -> Any:
    async def endpoint(request: Request) -> Response:
        context = await executable(request)
        return render(context)

    endpoint.__name__ = executable.__name__
    return endpoint


def _app_settings(app: FastAPI) -> TrellisSettings:
    return getattr(app.state, "settings", None) or get_settings()


def mount_registry(
    app: FastAPI,
    registry: HandlerRegistry,
    pipeline: ExecutionPipeline | None = None,
    *,
    state_factory: StateFactory | None = None,
    prefix: str | None = None,
) -> list[RouteBinding]:
    """
    Register every route of ``registry`` on ``app``.

    Args:
        app: Target application
        registry: Declared handlers
        pipeline: Shared pipeline (one is created when omitted)
        state_factory: Seeds ``context.state`` from the Starlette request
        prefix: Path prefix; defaults to ``settings.api_prefix``

    Returns:
        The bindings, in registration order

    Raises:
        InvalidRouteError: A route identifier is not ``"METHOD /path"``
    """
    settings = _app_settings(app)
    prefix = settings.api_prefix if prefix is None else prefix

    def register(method: str, path: str, executable: Executable) -> None:
        app.add_api_route(
            prefix + openapi_path(path),
            _endpoint(executable),
            methods=[method],
            name=executable.__name__,
            include_in_schema=False,
        )

    bindings = registry.bind(register, pipeline, state_factory=state_factory)
    install_openapi(app, registry, prefix=prefix)
    return bindings


def install_openapi(app: FastAPI, registry: HandlerRegistry, *, prefix: str = "") -> None:
    """Serve the descriptor-generated document from the app's ``openapi_url``."""

    def openapi() -> dict[str, Any]:
        if app.openapi_schema is None:
            app.openapi_schema = SpecEmitter().to_document(
                registry.routes(),
                title=app.title,
                version=app.version,
                prefix=prefix,
            )
        return app.openapi_schema

    app.openapi = openapi  # type: ignore[method-assign]
