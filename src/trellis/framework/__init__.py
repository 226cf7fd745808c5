"""
Trellis Framework - declarative handlers and the per-request pipeline.

This module provides:
- The declaration API (Handler.route / event / cron / task builders)
- Schema-driven validation of body, params and headers
- Version negotiation and the staged execution pipeline
- OpenAPI generation and metadata snapshots for tooling
- An explicit HandlerRegistry that binds routes to a transport

All components are transport-agnostic; the FastAPI binding lives in
``trellis.api``.
"""

from trellis.framework.context import Request, RequestContext
from trellis.framework.handler import (
    Handler,
    HandlerBuilder,
    HandlerDescriptor,
    HandlerKind,
    HandlerVersion,
    ResponseSchema,
)
from trellis.framework.metadata import HandlerMetadata, MetadataReporter, ValidationFlags
from trellis.framework.middleware import compose
from trellis.framework.openapi import OpenAPIOperation, SpecEmitter, openapi_path
from trellis.framework.pipeline import ExecutionPipeline
from trellis.framework.registry import HandlerRegistry, RouteBinding, parse_route
from trellis.framework.schema import (
    FieldGroup,
    ValidationCompiler,
    ValidationIssue,
    ValidationResult,
    ValidatorSchema,
    compile_schema,
    declare_validator,
)
from trellis.framework.versions import VersionResolver

__all__ = [
    # Declaration
    "Handler",
    "HandlerBuilder",
    "HandlerDescriptor",
    "HandlerKind",
    "HandlerVersion",
    "ResponseSchema",
    # Validation
    "FieldGroup",
    "ValidationCompiler",
    "ValidationIssue",
    "ValidationResult",
    "ValidatorSchema",
    "compile_schema",
    "declare_validator",
    # Execution
    "ExecutionPipeline",
    "Request",
    "RequestContext",
    "VersionResolver",
    "compose",
    # Tooling
    "HandlerMetadata",
    "MetadataReporter",
    "OpenAPIOperation",
    "SpecEmitter",
    "ValidationFlags",
    "openapi_path",
    # Registry
    "HandlerRegistry",
    "RouteBinding",
    "parse_route",
]
