"""
Tests for trellis.framework.registry module.

Tests cover:
- Registration of builders and descriptors
- Duplicate detection per kind and identifier
- Lookup, listing and clearing
- Route parsing
- Binding routes through a registration callable
"""

from unittest.mock import patch

import pytest

from trellis.core.errors import DuplicateHandlerError, HandlerConfigError, InvalidRouteError
from trellis.framework.context import RequestContext
from trellis.framework.handler import Handler, HandlerKind
from trellis.framework.registry import HandlerRegistry, RouteBinding, parse_route


def noop(ctx):
    return None


class TestRegister:
    """Tests for HandlerRegistry.register."""

    def test_register_builder_builds(self, registry):
        descriptor = registry.register(Handler.route("GET /x").handler(noop))
        assert descriptor.identifier == "GET /x"
        assert len(registry) == 1
        assert descriptor in registry

    def test_register_descriptor(self, registry):
        descriptor = Handler.event("e").handler(noop).build()
        assert registry.register(descriptor) is descriptor

    def test_register_incomplete_builder_raises(self, registry):
        with pytest.raises(HandlerConfigError):
            registry.register(Handler.route("GET /x"))
        assert len(registry) == 0

    def test_duplicate_raises(self, registry):
        registry.register(Handler.route("GET /x").handler(noop))
        with pytest.raises(DuplicateHandlerError, match="already registered"):
            registry.register(Handler.route("GET /x").handler(noop))

    def test_registration_logged(self, registry):
        with patch("trellis.framework.registry.log") as mock_log:
            registry.register(Handler.event("user.created").handler(noop))
        mock_log.debug.assert_called_once_with(
            "handler.registered", kind="event", identifier="user.created", label=None
        )

    def test_same_identifier_different_kind_allowed(self, registry):
        registry.register(Handler.event("sync").handler(noop))
        registry.register(Handler.task("sync").handler(noop))
        assert len(registry) == 2


class TestLookup:
    """Tests for get / list_handlers / routes / clear."""

    def test_get(self, registry):
        descriptor = registry.register(Handler.cron("0 0 * * *").handler(noop))
        assert registry.get("cron", "0 0 * * *") is descriptor
        assert registry.get(HandlerKind.CRON, "0 0 * * *") is descriptor

    def test_get_missing_shows_available(self, registry):
        registry.register(Handler.event("a").handler(noop))
        with pytest.raises(KeyError, match="event:a"):
            registry.get("event", "missing")

    def test_list_in_registration_order(self, registry):
        b = registry.register(Handler.route("GET /b").handler(noop))
        a = registry.register(Handler.event("a").handler(noop))
        c = registry.register(Handler.route("GET /c").handler(noop))
        assert registry.list_handlers() == [b, a, c]
        assert registry.list_handlers("route") == [b, c]
        assert registry.routes() == [b, c]
        assert list(registry) == [b, a, c]

    def test_clear(self, registry):
        registry.register(Handler.event("a").handler(noop))
        registry.clear()
        assert len(registry) == 0


class TestParseRoute:
    """Tests for parse_route."""

    @pytest.mark.parametrize(
        "identifier, expected",
        [
            ("GET /users", ("GET", "/users")),
            ("post   /users/:id", ("POST", "/users/:id")),
            ("  DELETE\t/x ", ("DELETE", "/x")),
            ("/health", ("GET", "/health")),
        ],
    )
    def test_valid(self, identifier, expected):
        assert parse_route(identifier) == expected

    @pytest.mark.parametrize("identifier", ["FETCH /x", "GET users", "GET /a /b", "", "GET"])
    def test_invalid(self, identifier):
        with pytest.raises(InvalidRouteError):
            parse_route(identifier)


class TestBind:
    """Tests for HandlerRegistry.bind."""

    def test_registers_only_routes(self, registry):
        registry.register(Handler.route("GET /users/:id").expose_as("getUser").handler(noop))
        registry.register(Handler.event("user.created").handler(noop))
        registry.register(Handler.route("POST /users").handler(noop))
        calls = []

        bindings = registry.bind(lambda method, path, fn: calls.append((method, path, fn)))

        assert [(m, p) for m, p, _ in calls] == [("GET", "/users/:id"), ("POST", "/users")]
        assert all(isinstance(b, RouteBinding) for b in bindings)
        assert bindings[0].descriptor.label == "getUser"
        assert calls[0][2].__name__ == "getUser"

    def test_binding_logged(self, registry):
        registry.register(Handler.route("GET /users").expose_as("listUsers").handler(noop))
        with patch("trellis.framework.registry.log") as mock_log:
            registry.bind(lambda *a: None)
        mock_log.info.assert_called_once_with("route.bound", method="GET", path="/users", label="listUsers")

    def test_invalid_route_raises_at_bind(self, registry):
        registry.register(Handler.route("GO /x").handler(noop))
        with pytest.raises(InvalidRouteError):
            registry.bind(lambda *a: None)

    @pytest.mark.asyncio
    async def test_executable_runs_pipeline(self, registry, make_request):
        registry.register(Handler.route("GET /users/:id").handler(lambda ctx: ctx.params["id"]))
        executables = {}
        registry.bind(lambda method, path, fn: executables.setdefault(path, fn))

        ctx = await executables["/users/:id"](make_request(), params={"id": "7"})
        assert isinstance(ctx, RequestContext)
        assert ctx.result == "7"

    @pytest.mark.asyncio
    async def test_state_factory_seeds_state(self, registry, make_request):
        registry.register(Handler.route("GET /me").handler(lambda ctx: ctx.state["user"]))
        executables = []
        registry.bind(
            lambda method, path, fn: executables.append(fn),
            state_factory=lambda request: {"user": request.headers.get("x-user")},
        )
        ctx = await executables[0](make_request(headers={"x-user": "ada"}))
        assert ctx.result == "ada"

        ctx = await executables[0](make_request(headers={"x-user": "ada"}), state={"user": "explicit"})
        assert ctx.result == "explicit"
