"""Roost application object.

``HttpRouter`` pairs a ``Router`` with a ``RouterConfig``. Setup code
registers listeners through it; at runtime it is an ASGI callable that
runs each request through the staged pipeline in
``roost.server.handler``.
"""

import logging
from collections.abc import Callable, Iterable
from types import MappingProxyType
from typing import Any, Self

from roost._internal.asgi import Receive, Scope, Send
from roost._internal.types import Handler, NextHandler, Pattern
from roost.config import RouterConfig
from roost.events.emitter import Listener, Status
from roost.http.request import Request
from roost.http.response import ServerResponse
from roost.routing.route import Route, RouteBuilder
from roost.routing.router import RoutePath, Router
from roost.server.handler import handle_request

logger = logging.getLogger("roost.server")


class HttpRouter:
    """An embeddable HTTP router.

    Usage::

        app = HttpRouter()

        @app.get("/users/:id")
        async def show_user(request, response):
            response.rest.set("id", request.params["id"])

        @app.on("request", priority=100)
        def reject_bots(request, response):
            if "bot" in (request.headers.get("user-agent") or ""):
                return Status.INCOMPLETE

        # ASGI: uvicorn module:app
        # Or from another framework: await app.handle(request, response, next)

    Registration is expected to finish before the first request; the
    listener registry is not synchronized against concurrent dispatch.
    """

    __slots__ = ("config", "router")

    def __init__(self, config: RouterConfig | None = None, *, router: Router | None = None) -> None:
        self.config: RouterConfig = config or RouterConfig()
        self.router: Router = router or Router()

    def __getattr__(self, name: str) -> Callable[..., Any]:
        router = object.__getattribute__(self, "router")
        try:
            return router.verbs[name]
        except KeyError:
            msg = f"{type(self).__name__!r} object has no attribute {name!r}"
            raise AttributeError(msg) from None

    # -- Registration surface --

    def on(self, pattern: Pattern, handler: Handler | None = None, priority: int = 0) -> Any:
        """Listen for *pattern*; without *handler*, return a decorator."""
        if handler is None:

            def decorator(func: Handler) -> Handler:
                self.router.on(pattern, func, priority)
                return func

            return decorator

        self.router.on(pattern, handler, priority)
        return self

    def off(self, pattern: Pattern, handler: Handler | None = None) -> Self:
        self.router.off(pattern, handler)
        return self

    def route(self, verb: str, path: RoutePath, handler: Handler, priority: int = 0) -> Self:
        self.router.route(verb, path, handler, priority)
        return self

    def route_many(
        self,
        verb: str,
        path: RoutePath,
        handlers: Iterable[Handler],
        priority: int = 0,
    ) -> Self:
        self.router.route_many(verb, path, handlers, priority)
        return self

    def route_prioritized(self, verb: str, path: RoutePath, *items: int | Handler) -> Self:
        self.router.route_prioritized(verb, path, *items)
        return self

    def at(self, path: RoutePath) -> RouteBuilder:
        return self.router.at(path)

    def use(self, *items: Any) -> Self:
        """Merge routers or emitters (or lists of them) into this one."""
        for item in items:
            if isinstance(item, HttpRouter):
                self.router.use(item.router)
            elif isinstance(item, (list, tuple)):
                self.use(*item)
            else:
                self.router.use(item)
        return self

    async def emit(self, event: str, *args: Any) -> Status:
        return await self.router.emit(event, *args)

    async def route_to(self, verb: str, path: str, *args: Any) -> Status:
        return await self.router.route_to(verb, path, *args)

    def listeners(self, pattern: Pattern | None = None) -> list[Listener]:
        return self.router.listeners(pattern)

    @property
    def routes(self) -> list[Route]:
        return self.router.routes

    @property
    def verbs(self) -> MappingProxyType[str, Callable[..., Any]]:
        return self.router.verbs

    @property
    def meta(self) -> dict[str, Any]:
        """Metadata shared with every router merged into this one."""
        return self.router.meta

    # -- Request handling --

    async def handle(
        self,
        request: Request,
        response: ServerResponse,
        next: NextHandler | None = None,
    ) -> None:
        """Run *request* through the pipeline.

        *next* receives any exception raised while attaching payloads,
        running a stage, or rendering. Without it, the exception is
        logged and emitted as ``"error"`` with ``(error, request, response)``.
        """
        if next is None:

            async def next(error: Exception) -> None:
                await self._report(error, request, response)

        await handle_request(request, response, next, emitter=self.router, config=self.config)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            return

        await self.handle(Request.from_asgi(scope, receive), ServerResponse(send))

    async def _report(self, error: Exception, request: Request, response: ServerResponse) -> None:
        logger.error("%s %s failed", request.method, request.path, exc_info=error)
        await self.router.emit("error", error, request, response)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Emits ``"startup"`` and ``"shutdown"`` with this router as the
        only argument, then signals completion back to the server.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.router.emit("startup", self)
                except Exception as exc:
                    logger.exception("Startup listener failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                try:
                    await self.router.emit("shutdown", self)
                except Exception as exc:
                    logger.exception("Shutdown listener failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return


def create_router(config: RouterConfig | None = None) -> HttpRouter:
    """Create an ``HttpRouter`` with a fresh ``Router``."""
    return HttpRouter(config)

