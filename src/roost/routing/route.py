"""Route, RouteInfo, and the RouteBuilder returned by ``Router.at()``."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from roost._internal.types import Handler
from roost.routing.path import PathKey
from roost.routing.verbs import ALL, VERBS

if TYPE_CHECKING:
    from roost.routing.router import Router


@dataclass(frozen=True, slots=True)
class Route:
    """A compiled route.

    Created at registration time. ``matcher`` tests ``"<VERB> <PATH>"``
    event strings; ``keys`` names its capture groups in order.
    """

    verb: str
    path: str | re.Pattern[str]
    matcher: re.Pattern[str]
    keys: tuple[PathKey, ...]


@dataclass(slots=True)
class RouteInfo:
    """What the router attaches to a request when a route matches.

    ``parameters`` holds named captures. ``args`` holds unnamed captures
    and any capture beyond the route's keys.
    """

    event: str
    args: list[str] = field(default_factory=list)
    parameters: dict[str, str] = field(default_factory=dict)


class RouteBuilder:
    """Registers several verbs against one path.

    Usage::

        router.at("/users/:id").get(show_user).put(update_user, 5)

        users = router.at("/users")

        @users.post()
        async def create_user(request, response): ...
    """

    __slots__ = ("path", "router")

    def __init__(self, router: Router, path: str | re.Pattern[str]) -> None:
        self.router = router
        self.path = path

    def __repr__(self) -> str:
        return f"RouteBuilder({self.path!r})"

    def verb(self, verb: str, handler: Handler | None = None, priority: int = 0) -> Any:
        """Register *handler* for *verb* on this path.

        Returns the builder for chaining, or a decorator when *handler*
        is omitted.
        """
        if handler is None:

            def decorator(func: Handler) -> Handler:
                self.router.route(verb, self.path, func, priority)
                return func

            return decorator

        self.router.route(verb, self.path, handler, priority)
        return self

    def __getattr__(self, name: str) -> Callable[..., Any]:
        verb = name.upper()
        if verb not in VERBS and verb != ALL:
            msg = f"{type(self).__name__!r} object has no attribute {name!r}"
            raise AttributeError(msg)

        def register(handler: Handler | None = None, priority: int = 0) -> Any:
            return self.verb(verb, handler, priority)

        return register
