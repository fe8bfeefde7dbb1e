"""HTTP request aggregate.

Transport data (method, target, headers, ...) plus extension fields
that payload traits and the router fill in as the request moves
through the pipeline. Body access is asynchronous and cached.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from roost._internal.asgi import HTTPScope, Receive, Scope
from roost.errors import PayloadError
from roost.http.headers import Headers
from roost.http.query import QueryParams

if TYPE_CHECKING:
    from roost.http.forms import FormData
    from roost.payload.server import ServerInfo
    from roost.routing.route import RouteInfo


@dataclass(slots=True, eq=False)
class Request:
    """An incoming HTTP request.

    ``url`` is the request target as received (path, query string, and
    possibly a fragment). ``path`` and ``query`` are derived from it.

    Extension fields start empty:

    - ``route`` / ``params``: written by the router when a route matches
    - ``server``: written by the server payload trait
    - ``stage`` / ``body_data``: written by the stage payload trait
    """

    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    http_version: str = "1.1"
    scheme: str = "http"
    root_path: str = ""
    client: tuple[str, int] | None = None
    server_address: tuple[str, int] | None = None

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = field(default=None, repr=False)

    route: RouteInfo | None = None
    params: dict[str, str] = field(default_factory=dict)
    server: ServerInfo | None = None
    stage: dict[str, Any] | None = None
    body_data: Any = None

    # Private: body cache
    _cache: dict[str, Any] = field(default_factory=dict, repr=False)

    # -- Computed properties --

    @property
    def path(self) -> str:
        """The request target without query string or fragment."""
        return self.url.partition("#")[0].partition("?")[0] or "/"

    @property
    def query(self) -> QueryParams:
        """Parsed query string."""
        return QueryParams(self.url.partition("#")[0].partition("?")[2])

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    # -- Async body access --

    async def body(self, limit: int | None = None) -> bytes:
        """Read the full request body.

        Result is cached. The ASGI receive is consumed once, then
        the same bytes are returned on subsequent calls.

        Raises ``PayloadError`` (413) once more than *limit* bytes arrive.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks: list[bytes] = []
        size = 0
        if self._receive is not None:
            while True:
                message = await self._receive()
                if message.get("type") == "http.disconnect":
                    break
                chunk = message.get("body", b"")
                size += len(chunk)
                if limit is not None and size > limit:
                    raise PayloadError(f"Request body exceeds {limit} bytes", status=413)
                if chunk:
                    chunks.append(chunk)
                if not message.get("more_body", False):
                    break
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(await self.body())

    async def form(self) -> FormData:
        """Parse the body as form data (URL-encoded or multipart). Cached."""
        if "_form" in self._cache:
            return self._cache["_form"]

        from roost.http.forms import parse_form_data

        ct = self.content_type or "application/x-www-form-urlencoded"
        result = parse_form_data(await self.body(), ct)
        self._cache["_form"] = result
        return result

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        http = HTTPScope.from_scope(scope)
        return cls(
            method=http.method,
            url=http.target,
            headers=Headers(http.headers),
            http_version=http.http_version,
            scheme=http.scheme,
            root_path=http.root_path,
            client=http.client,
            server_address=http.server,
            _receive=receive,
        )
