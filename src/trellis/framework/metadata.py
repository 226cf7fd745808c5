"""Introspection snapshots of finalized handlers.

Used by documentation tooling and the ``trellis inspect`` command.  A
snapshot reports what is configured, never the callables themselves.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from trellis.framework.handler import HandlerDescriptor
from trellis.framework.schema import FieldGroup


class ValidationFlags(BaseModel):
    """Which field groups carry a validator."""

    model_config = ConfigDict(frozen=True)

    body: bool = False
    params: bool = False
    headers: bool = False


class HandlerMetadata(BaseModel):
    """Read-only summary of one handler's configuration."""

    model_config = ConfigDict(frozen=True)

    kind: str
    identifier: str
    label: str | None = None
    triggers: list[str] = Field(default_factory=list)
    invokes: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    description: str | None = None
    cached: bool = False
    has_middleware: bool = False
    has_evaluator: bool = False
    before_hooks: int = 0
    versions: list[str] = Field(default_factory=list)
    version_count: int = 0
    has_base_handler: bool = False
    validation: ValidationFlags = Field(default_factory=ValidationFlags)
    responses: list[int] = Field(default_factory=list)


class MetadataReporter:
    """Builds ``HandlerMetadata`` snapshots.  Pure; safe to share."""

    def snapshot(self, descriptor: HandlerDescriptor) -> HandlerMetadata:
        return HandlerMetadata(
            kind=descriptor.kind.value,
            identifier=descriptor.identifier,
            label=descriptor.label,
            triggers=list(descriptor.triggers),
            invokes=list(descriptor.invokes),
            tags=list(descriptor.tags),
            description=descriptor.description,
            cached=descriptor.cached,
            has_middleware=descriptor.middleware is not None,
            has_evaluator=descriptor.evaluator is not None,
            before_hooks=len(descriptor.before_hooks),
            versions=descriptor.version_labels,
            version_count=len(descriptor.versions),
            has_base_handler=descriptor.base_handler is not None,
            validation=ValidationFlags(
                body=descriptor.validator(FieldGroup.BODY) is not None,
                params=descriptor.validator(FieldGroup.PARAMS) is not None,
                headers=descriptor.validator(FieldGroup.HEADERS) is not None,
            ),
            responses=[response.status_code for response in descriptor.responses],
        )
