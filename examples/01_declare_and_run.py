#!/usr/bin/env python3
"""Declare and Run - Builder declarations driven through the pipeline.

This example declares a versioned, validated route and runs it directly
through the ExecutionPipeline, without any web server, then prints the
OpenAPI operation and metadata snapshot for the same declaration.

Run: python examples/01_declare_and_run.py
"""
import asyncio
import json

from trellis.core.errors import RequestValidationError
from trellis.framework import ExecutionPipeline, Handler, MetadataReporter, SpecEmitter
from trellis.framework.logging import configure_logging


class DemoRequest:
    """Just enough of a transport request: headers and async json()."""

    def __init__(self, body, headers=None):
        self.headers = headers or {}
        self._body = body

    async def json(self):
        return self._body


create_user = (
    Handler.route("POST /users")
    .expose_as("createUser")
    .description("Create a user")
    .tags(["users"])
    .validate_body({
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "age": {"type": "integer", "minimum": 18},
        },
        "required": ["name"],
    })
    .response(201, {"type": "object"})
    .version("v1", lambda ctx: {"created": ctx.body["name"], "api": "v1"})
    .version("v2", lambda ctx: {"created": ctx.body["name"], "age": ctx.body.get("age"), "api": "v2"})
    .build()
)


async def main():
    configure_logging(level="WARNING")
    pipeline = ExecutionPipeline()

    print("=" * 60)
    print("Declare and Run")
    print("=" * 60)

    # === 1. Latest version by default ===
    print("\n[1] No version hint -> latest declared version")
    ctx = await pipeline.execute(create_user, DemoRequest({"name": "Ada", "age": 36}))
    print(f"  Version: {ctx.version}")
    print(f"  Result:  {ctx.result}")

    # === 2. Version header ===
    print("\n[2] x-api-version: v1")
    ctx = await pipeline.execute(create_user, DemoRequest({"name": "Ada"}, {"x-api-version": "v1"}))
    print(f"  Version: {ctx.version}")
    print(f"  Result:  {ctx.result}")

    # === 3. Validation failure ===
    print("\n[3] Invalid body")
    try:
        await pipeline.execute(create_user, DemoRequest({"name": "Ada", "age": 12}))
    except RequestValidationError as e:
        print(f"  Rejected: {e}")
        print(f"  Codes:    {e.codes}")

    # === 4. Documentation ===
    print("\n[4] OpenAPI operation")
    print(json.dumps(SpecEmitter().to_operation(create_user).to_dict(), indent=2))

    print("\n[5] Metadata snapshot")
    print(json.dumps(MetadataReporter().snapshot(create_user).model_dump(), indent=2))


if __name__ == "__main__":
    asyncio.run(main())
