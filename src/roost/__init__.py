"""Roost — an embeddable, event-driven HTTP router.

Requests become event strings (``"GET /users/42"``) dispatched on a
pattern-matching bus, in priority order, with short-circuit control.

Basic usage::

    from roost import HttpRouter, Status

    app = HttpRouter()

    @app.get("/users/:id")
    def show_user(request, response):
        response.rest.set("id", request.params["id"])

    @app.on("request", priority=10)
    def gate(request, response):
        if request.headers.get("x-blocked"):
            return Status.INCOMPLETE

``app`` is an ASGI callable; serve it with any ASGI server.

Standalone bus::

    from roost import EventEmitter

    bus = EventEmitter()
    bus.on("ping", handler)
    status = await bus.emit("ping")
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "EventEmitter",
    "HttpRouter",
    "PayloadError",
    "Request",
    "ResponseError",
    "RoostError",
    "Router",
    "RouterConfig",
    "ServerResponse",
    "Status",
    "create_router",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import roost`` fast while providing a clean top-level API.
    """
    if name in ("HttpRouter", "create_router"):
        from roost import app as _app

        return getattr(_app, name)

    if name == "RouterConfig":
        from roost.config import RouterConfig

        return RouterConfig

    if name in ("EventEmitter", "Status"):
        from roost.events import emitter as _emitter

        return getattr(_emitter, name)

    if name == "Router":
        from roost.routing.router import Router

        return Router

    if name == "Request":
        from roost.http.request import Request

        return Request

    if name == "ServerResponse":
        from roost.http.response import ServerResponse

        return ServerResponse

    if name in ("ConfigurationError", "PayloadError", "ResponseError", "RoostError"):
        from roost import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
