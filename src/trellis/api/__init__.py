"""
HTTP binding for trellis handlers.

Provides a FastAPI application factory that mounts a ``HandlerRegistry``.
All request semantics live in ``trellis.framework``; this package handles
only HTTP transport concerns: routing, rendering, error mapping and
request ids.

Quick start::

    from trellis.api import create_app

    app = create_app(registry)  # ready for uvicorn

Tags:
    trellis-core, api, REST, FastAPI, transport-layer

Doc-Types:
    api-reference
"""

from trellis.api.app import create_app
from trellis.api.binding import mount_registry

__all__ = ["create_app", "mount_registry"]
