"""Router — route registration on top of the pattern event bus.

A route is a listener whose pattern is a regex over ``"<VERB> <PATH>"``
event strings. Registering one compiles the path template, splices the
verb in front of it, and wraps the handler so captured path segments
land on the request before the handler runs.
"""

import functools
import logging
import re
from collections.abc import Callable, Iterable
from types import MappingProxyType
from typing import Any, Self, TypeAlias

from roost._internal.invoke import invoke
from roost._internal.types import Handler
from roost.errors import ConfigurationError
from roost.events.emitter import EventEmitter, Status
from roost.http.response import ServerResponse
from roost.routing.path import PathKey, compile_path, keys_from_regex
from roost.routing.route import Route, RouteBuilder, RouteInfo
from roost.routing.verbs import ALL, ALL_VERBS_PATTERN, VERBS

logger = logging.getLogger("roost.routing")

RoutePath: TypeAlias = str | re.Pattern[str]


class Router(EventEmitter):
    """Event bus with HTTP route registration.

    Usage::

        router = Router()
        router.get("/users/:id", show_user)
        router.route("POST", "/users", create_user, priority=10)

        @router.all("/admin/*")
        def guard(request, response):
            if not request.headers.get("authorization"):
                return Status.INCOMPLETE

        await router.route_to("GET", "/users/42", request, response)

    Verb shortcuts (``get``, ``post``, ... and ``all``) come from a table
    built in ``__init__`` from ``VERBS``.
    """

    __slots__ = ("_routes", "_verbs")

    def __init__(self) -> None:
        super().__init__()
        self._routes: list[Route] = []
        self._verbs: MappingProxyType[str, Callable[..., Any]] = MappingProxyType(
            {verb.lower(): functools.partial(self._shortcut, verb) for verb in (*VERBS, ALL)}
        )

    def __getattr__(self, name: str) -> Callable[..., Any]:
        try:
            return object.__getattribute__(self, "_verbs")[name]
        except KeyError:
            msg = f"{type(self).__name__!r} object has no attribute {name!r}"
            raise AttributeError(msg) from None

    @property
    def verbs(self) -> MappingProxyType[str, Callable[..., Any]]:
        """Verb shortcut table: lowercase verb -> registration function."""
        return self._verbs

    @property
    def routes(self) -> list[Route]:
        """Every compiled route, in registration order."""
        return list(self._routes)

    # -- Registration --

    def route(self, verb: str, path: RoutePath, handler: Handler, priority: int = 0) -> Self:
        """Register *handler* for *verb* requests to *path*.

        *path* is a template (``"/users/:id"``) or a compiled regex over
        the path. ``ALL`` registers for every verb.

        Raises ``ConfigurationError`` if *path* is neither.
        """
        route = compile_route(verb, path)
        self._routes.append(route)
        self.on(route.matcher, self._dispatcher(route, handler), priority)
        logger.debug("Registered %s %s (priority %d)", route.verb, path, priority)
        return self

    def route_many(
        self,
        verb: str,
        path: RoutePath,
        handlers: Iterable[Handler],
        priority: int = 0,
    ) -> Self:
        """Register each of *handlers* for the same verb, path, and priority."""
        for handler in handlers:
            self.route(verb, path, handler, priority)
        return self

    def route_prioritized(self, verb: str, path: RoutePath, *items: int | Handler) -> Self:
        """Register handlers interleaved with priorities.

        Each number sets the priority for the handlers after it::

            router.route_prioritized("GET", "/", auth, 10, load, render)
            # auth at 0, load and render at 10
        """
        priority = 0
        for item in items:
            if isinstance(item, int) and not isinstance(item, bool):
                priority = item
            elif callable(item):
                self.route(verb, path, item, priority)
            else:
                msg = f"Expected a priority or a handler, got {item!r}"
                raise ConfigurationError(msg)
        return self

    def at(self, path: RoutePath) -> RouteBuilder:
        """Return a builder for registering several verbs on *path*."""
        return RouteBuilder(self, path)

    def use(self, *items: Any) -> Self:
        """Compose other emitters into this router.

        Emitters are merged (see ``merge``), lists and tuples are spread.
        Bare handlers are accepted but not registered anywhere; use
        ``on()`` to listen for lifecycle events.
        """
        for item in items:
            if isinstance(item, EventEmitter):
                self.merge(item)
            elif isinstance(item, (list, tuple)):
                self.use(*item)
            elif callable(item):
                logger.debug("use() ignored handler %r; register it with on()", item)
            else:
                msg = f"Cannot use {item!r}: expected an emitter, a handler, or a list of them"
                raise ConfigurationError(msg)
        return self

    def merge(self, source: EventEmitter) -> Self:
        """Merge *source*; a source ``Router`` also contributes its ``routes``."""
        super().merge(source)
        if isinstance(source, Router):
            self._routes.extend(source._routes)
        return self

    def off(self, pattern: Any, handler: Handler | None = None) -> Self:
        """Remove listeners; route handlers can be given unwrapped."""
        if handler is not None:
            for listener in self.listeners(pattern):
                if getattr(listener.handler, "__wrapped__", None) is handler:
                    super().off(pattern, listener.handler)
        return super().off(pattern, handler)

    # -- Dispatch --

    async def route_to(self, verb: str, path: str, *args: Any) -> Status:
        """Emit ``"<VERB> <path>"`` as though such a request had arrived."""
        return await self.emit(f"{verb.upper()} {path}", *args)

    # -- Internals --

    def _shortcut(
        self,
        verb: str,
        path: RoutePath,
        handler: Handler | Iterable[Handler] | None = None,
        priority: int = 0,
    ) -> Any:
        if handler is None:

            def decorator(func: Handler) -> Handler:
                self.route(verb, path, func, priority)
                return func

            return decorator
        if isinstance(handler, (list, tuple)):
            return self.route_many(verb, path, handler, priority)
        return self.route(verb, path, handler, priority)

    def _dispatcher(self, route: Route, handler: Handler) -> Handler:
        """Wrap *handler* so the route's captures reach the request."""
        keys = route.keys

        @functools.wraps(handler)
        async def dispatch(request: Any, *args: Any) -> Any:
            found = self.event
            info = bind_params(found.event if found else "", found.groups if found else (), keys)

            request.route = info
            request.params = info.parameters
            stage = getattr(request, "stage", None)
            if isinstance(stage, dict):
                stage.update(info.parameters)
            if args and isinstance(args[0], ServerResponse):
                args[0].route = info

            return await invoke(handler, request, *args)

        return dispatch


def compile_route(verb: str, path: RoutePath) -> Route:
    """Compile *verb* and *path* into a ``Route`` matching event strings."""
    verb = verb.upper()
    token = ALL_VERBS_PATTERN if verb == ALL else re.escape(verb)

    if isinstance(path, str):
        compiled = compile_path(path)
        source, flags, keys = compiled.regex.pattern, compiled.regex.flags, compiled.keys
    elif isinstance(path, re.Pattern):
        source, flags, keys = path.pattern, path.flags, keys_from_regex(path)
    else:
        msg = f"Route path must be a string or a compiled regex, got {type(path).__name__}"
        raise ConfigurationError(msg)

    path_source = source.removeprefix("^")
    if flags & re.IGNORECASE:
        # Case-insensitivity covers the path only; the verb token stays exact
        path_source = f"(?i:{path_source})"
        flags &= ~re.IGNORECASE

    matcher = re.compile(rf"^{token}\s{path_source}", flags)
    return Route(verb=verb, path=path, matcher=matcher, keys=keys)


def bind_params(
    event: str,
    groups: tuple[str | None, ...],
    keys: tuple[PathKey, ...],
) -> RouteInfo:
    """Sort captured groups into named parameters and positional args.

    A group bound to a string key is named. Groups bound to numbered
    keys, and groups past the end of *keys*, are positional. Groups that
    did not participate in the match are skipped.
    """
    info = RouteInfo(event=event)
    for index, value in enumerate(groups):
        if value is None:
            continue
        if index < len(keys) and isinstance(keys[index].name, str):
            info.parameters[keys[index].name] = value
        else:
            info.args.append(value)
    return info
