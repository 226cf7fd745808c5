"""OpenAPI generation from route descriptors.

``SpecEmitter.to_operation`` turns one route descriptor into an OpenAPI
operation object; ``to_document`` aggregates a set of descriptors into a
complete OpenAPI 3.1 document.  Only the data shape is produced; rendering
it is left to whatever documentation UI consumes it.

Tags:
    trellis-core, framework, openapi, documentation

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from trellis.framework.handler import HandlerDescriptor, HandlerKind
from trellis.framework.registry import parse_route
from trellis.framework.schema import FieldGroup, snapshot_schema

OPENAPI_VERSION = "3.1.0"
JSON_MEDIA_TYPE = "application/json"

_PATH_PARAM_RE = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


class _OpenAPIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class MediaTypeObject(_OpenAPIModel):
    schema_: Any = Field(alias="schema")


class ParameterObject(_OpenAPIModel):
    name: str
    in_: Literal["path", "query", "header"] = Field(default="path", alias="in")
    required: bool = False
    schema_: Any = Field(default_factory=dict, alias="schema")


class RequestBodyObject(_OpenAPIModel):
    required: bool = True
    content: dict[str, MediaTypeObject]


class ResponseObject(_OpenAPIModel):
    description: str
    content: dict[str, MediaTypeObject]


class OpenAPIOperation(_OpenAPIModel):
    """OpenAPI operation object for one route."""

    summary: str
    tags: list[str] = Field(default_factory=list)
    operation_id: str | None = Field(default=None, alias="operationId")
    parameters: list[ParameterObject] | None = None
    request_body: RequestBodyObject | None = Field(default=None, alias="requestBody")
    responses: dict[str, ResponseObject] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """JSON shape with OpenAPI field names; unset optional members are omitted."""
        data = self.model_dump(by_alias=True)
        return {key: value for key, value in data.items() if value is not None}


def openapi_path(path: str) -> str:
    """``/users/:id`` -> ``/users/{id}``."""
    return _PATH_PARAM_RE.sub(r"{\1}", path)


class SpecEmitter:
    """Reads finalized descriptors; never mutates them."""

    def to_operation(self, descriptor: HandlerDescriptor) -> OpenAPIOperation | None:
        """The operation object for a route descriptor; None for every other kind."""
        if descriptor.kind is not HandlerKind.ROUTE:
            return None

        operation: dict[str, Any] = {
            "summary": descriptor.description or f"{descriptor.kind.value} {descriptor.identifier}",
            "tags": list(descriptor.tags),
            "operation_id": descriptor.label,
            "responses": {
                str(response.status_code): ResponseObject(
                    description=f"Response {response.status_code}",
                    content={JSON_MEDIA_TYPE: MediaTypeObject(schema_=snapshot_schema(response.schema))},
                )
                for response in descriptor.responses
            },
        }

        params = descriptor.validator(FieldGroup.PARAMS)
        if params is not None and isinstance(params.schema, dict) and "properties" in params.schema:
            properties = params.schema.get("properties") or {}
            required = params.schema.get("required") or ()
            operation["parameters"] = [
                ParameterObject(name=name, in_="path", required=name in required, schema_=snapshot_schema(schema))
                for name, schema in properties.items()
            ]

        body = descriptor.validator(FieldGroup.BODY)
        if body is not None:
            operation["request_body"] = RequestBodyObject(
                required=True,
                content={JSON_MEDIA_TYPE: MediaTypeObject(schema_=snapshot_schema(body.schema))},
            )

        return OpenAPIOperation(**operation)

    def to_document(
        self,
        descriptors: Iterable[HandlerDescriptor],
        *,
        title: str,
        version: str,
        prefix: str = "",
    ) -> dict[str, Any]:
        """
        Aggregate route operations into an OpenAPI document.

        Raises:
            InvalidRouteError: A route identifier is not ``"METHOD /path"``
        """
        paths: dict[str, dict[str, Any]] = {}
        for descriptor in descriptors:
            operation = self.to_operation(descriptor)
            if operation is None:
                continue
            method, path = parse_route(descriptor.identifier)
            paths.setdefault(openapi_path(prefix + path), {})[method.lower()] = operation.to_dict()
        return {
            "openapi": OPENAPI_VERSION,
            "info": {"title": title, "version": version},
            "paths": paths,
        }
