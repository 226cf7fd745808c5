"""API middleware package.

Manifesto:
    Cross-cutting HTTP concerns (request ids, error mapping) live here so
    the binding itself only translates between Starlette and the pipeline.

Tags:
    trellis-core, api, middleware, cross-cutting

Doc-Types:
    api-reference
"""
