"""
Declaration module used by the API and CLI tests.

Declares a small users service the way an application module would:
builders are finalized into an explicit registry at import time.
"""

from starlette.responses import PlainTextResponse

from trellis.core.errors import AuthenticationError, FeatureDisabledError
from trellis.framework import Handler, HandlerRegistry

USER_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "email": {"type": "string", "format": "email"},
        "age": {"type": "integer", "minimum": 18},
    },
    "required": ["name", "email"],
}

USERS = {"1": {"id": "1", "name": "Ada", "email": "ada@example.com"}}


def require_auth(state):
    if not state.get("authenticated"):
        raise AuthenticationError("Authentication required")


def require_beta(state):
    if not state.get("flags", {}).get("beta"):
        raise FeatureDisabledError("beta")


def get_user_v1(ctx):
    return {"name": USERS[ctx.params["id"]]["name"]}


def get_user_v2(ctx):
    return USERS[ctx.params["id"]]


def create_user(ctx):
    ctx.status_code = 201
    return {"id": "2", **ctx.body}


def ping(ctx):
    return PlainTextResponse("pong")


def explode(ctx):
    raise RuntimeError("kaboom")


def on_user_created(ctx):
    return None


registry = HandlerRegistry()

registry.register(
    Handler.route("GET /users/:id")
    .expose_as("getUser")
    .description("Fetch a user")
    .tags(["users"])
    .validate_params({"type": "object", "properties": {"id": {"type": "string"}}, "required": ["id"]})
    .response(200, USER_SCHEMA)
    .version("v1", get_user_v1)
    .version("v2", get_user_v2)
)

registry.register(
    Handler.route("POST /users")
    .expose_as("createUser")
    .tags(["users"])
    .evaluate(require_auth)
    .validate_body(USER_SCHEMA)
    .response(201, USER_SCHEMA)
    .triggers(["user.created"])
    .handler(create_user)
)

registry.register(Handler.route("GET /ping").handler(ping))
registry.register(Handler.route("GET /beta").evaluate(require_beta).handler(lambda ctx: {"beta": True}))
registry.register(Handler.route("GET /explode").handler(explode))
registry.register(
    Handler.event("user.created").triggers(["user.created"]).invokes(["email.send"]).handler(on_user_created)
)

handlers = [Handler.task("cleanup").handler(lambda ctx: None), Handler.cron("0 * * * *").handler(lambda ctx: None)]

incomplete = Handler.route("GET /broken")


def state_from_headers(request):
    """Seed pipeline state the way an auth middleware would."""
    return {
        "authenticated": request.headers.get("authorization") == "Bearer good",
        "flags": {"beta": request.headers.get("x-beta") == "on"},
    }
