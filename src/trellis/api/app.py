"""
FastAPI application factory.

``create_app()`` wires the request-id middleware, the trellis error
handlers and every declared route into a single ``FastAPI`` instance.

Manifesto:
    The app factory is the single composition root -- the registry is
    mounted here, so declaration modules never touch ``FastAPI``
    directly.

Tags:
    trellis-core, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from trellis.api.binding import mount_registry
from trellis.api.middleware.errors import install_error_handlers
from trellis.api.middleware.request_id import RequestIDMiddleware
from trellis.core.settings import TrellisSettings, get_settings
from trellis.framework.logging import configure_logging, get_logger
from trellis.framework.pipeline import ExecutionPipeline
from trellis.framework.registry import HandlerRegistry, StateFactory


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan -- startup / shutdown logging."""
    log = get_logger("trellis.api")
    registry: HandlerRegistry = app.state.registry
    log.info("trellis API starting", version=app.version, routes=len(registry.routes()))
    yield
    log.info("trellis API shutting down")


def create_app(
    registry: HandlerRegistry,
    *,
    settings: TrellisSettings | None = None,
    pipeline: ExecutionPipeline | None = None,
    state_factory: StateFactory | None = None,
) -> FastAPI:
    """Build and return a FastAPI application serving ``registry``.

    Parameters
    ----------
    registry : HandlerRegistry
        Declared handlers; every route descriptor is mounted.
    settings : TrellisSettings | None
        Override settings (useful for testing).  When ``None`` the cached
        singleton from :func:`get_settings` is used.
    pipeline : ExecutionPipeline | None
        Shared pipeline, e.g. one with a custom VersionResolver.
    state_factory : callable | None
        Seeds ``context.state`` from each Starlette request.
    """

    settings = settings or get_settings()
    configure_logging()

    app = FastAPI(
        title=settings.openapi_title,
        version=settings.openapi_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    # Stash settings on app state for middleware access
    app.state.settings = settings
    app.state.registry = registry

    app.add_middleware(RequestIDMiddleware)
    install_error_handlers(app)

    mount_registry(app, registry, pipeline or ExecutionPipeline(), state_factory=state_factory)
    return app
