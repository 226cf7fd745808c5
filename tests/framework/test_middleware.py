"""
Tests for trellis.framework.middleware.compose.
"""

import pytest

from trellis.framework.handler import Handler
from trellis.framework.middleware import compose
from trellis.framework.pipeline import ExecutionPipeline


class TestCompose:
    @pytest.mark.asyncio
    async def test_runs_in_order_sync_and_async(self, make_request):
        calls = []

        def first(ctx):
            calls.append("first")
            ctx["tenant"] = "acme"

        async def second(ctx):
            calls.append(("second", ctx["tenant"]))

        descriptor = Handler.route("GET /x").use(compose(first, second)).handler(lambda ctx: None).build()
        await ExecutionPipeline().execute(descriptor, make_request())
        assert calls == ["first", ("second", "acme")]

    @pytest.mark.asyncio
    async def test_error_stops_chain(self, make_request):
        calls = []

        def fail(ctx):
            raise PermissionError("nope")

        composite = compose(fail, lambda ctx: calls.append("after"))
        descriptor = Handler.route("GET /x").use(composite).handler(lambda ctx: calls.append("handler")).build()
        with pytest.raises(PermissionError):
            await ExecutionPipeline().execute(descriptor, make_request())
        assert calls == []

    @pytest.mark.asyncio
    async def test_empty_compose_is_noop(self, make_request):
        descriptor = Handler.route("GET /x").use(compose()).handler(lambda ctx: "ok").build()
        ctx = await ExecutionPipeline().execute(descriptor, make_request())
        assert ctx.result == "ok"

    def test_rejects_non_callables(self):
        with pytest.raises(TypeError, match="callable"):
            compose(lambda ctx: None, "not-a-function")
