"""HTTP response bound to an ASGI ``send`` callable.

Handlers either write through it directly (``write()``/``end()``) or
leave a payload on ``content``/``rest`` for the router to render.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self

from roost._internal.asgi import Send
from roost.errors import ResponseError
from roost.http.headers import MutableHeaders

if TYPE_CHECKING:
    from roost.payload.content import ContentPayload
    from roost.payload.rest import RestPayload
    from roost.routing.route import RouteInfo


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _encode(chunk: str | bytes) -> bytes:
    return chunk.encode("utf-8") if isinstance(chunk, str) else chunk


class ServerResponse:
    """An outgoing HTTP response.

    ``status`` stays ``None`` until something sets it; the first write
    falls back to 200. Headers can be edited until the first write.

    Extension fields start empty:

    - ``content`` / ``rest``: written by the content and rest payload traits
    - ``route``: written by the router when a route matches
    """

    __slots__ = (
        "_send",
        "content",
        "finished",
        "headers",
        "headers_sent",
        "rest",
        "route",
        "status",
        "status_message",
    )

    def __init__(self, send: Send) -> None:
        self._send = send
        self.status: int | None = None
        self.status_message: str | None = None
        self.headers = MutableHeaders()
        self.headers_sent = False
        self.finished = False
        self.content: ContentPayload | None = None
        self.rest: RestPayload | None = None
        self.route: RouteInfo | None = None

    def __repr__(self) -> str:
        return f"ServerResponse(status={self.status!r}, headers_sent={self.headers_sent})"

    # -- Headers --

    def set_header(self, name: str, value: Any) -> Self:
        """Set a header, replacing earlier values."""
        self._check_headers_open(name)
        self.headers[name] = str(value)
        return self

    def get_header(self, name: str) -> str | None:
        """Return the header value, or ``None``."""
        return self.headers.get(name)

    def has_header(self, name: str) -> bool:
        """Whether a header is set."""
        return name in self.headers

    def remove_header(self, name: str) -> Self:
        """Remove a header if present."""
        self._check_headers_open(name)
        self.headers.pop(name, None)
        return self

    # -- Writing --

    async def write_head(
        self,
        status: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Send the status line and headers.

        Raises ``ResponseError`` if they were already sent.
        """
        if self.headers_sent:
            raise ResponseError("Headers already sent")
        if status is not None:
            self.status = status
        for name, value in (headers or {}).items():
            self.headers[name] = value
        if self.status is None:
            self.status = 200
        await self._send(
            {
                "type": "http.response.start",
                "status": self.status,
                "headers": self.headers.to_raw(),
            }
        )
        self.headers_sent = True

    async def write(self, chunk: str | bytes) -> None:
        """Send part of the body, sending headers first if needed."""
        if self.finished:
            raise ResponseError("Cannot write after end()")
        if not self.headers_sent:
            await self.write_head()
        body = _encode(chunk) if _body_allowed(self.status or 200) else b""
        if body:
            await self._send({"type": "http.response.body", "body": body, "more_body": True})

    async def end(self, chunk: str | bytes | None = None) -> None:
        """Send the last of the body and finish the response.

        When nothing was written before, ``Content-Length`` is filled in.
        """
        if self.finished:
            raise ResponseError("Response already ended")
        body = _encode(chunk) if chunk is not None else b""
        if not _body_allowed(self.status or 200):
            body = b""
        if not self.headers_sent:
            if "content-length" not in self.headers:
                self.headers["Content-Length"] = str(len(body))
            await self.write_head()
        await self._send({"type": "http.response.body", "body": body, "more_body": False})
        self.finished = True

    def _check_headers_open(self, name: str) -> None:
        if self.headers_sent:
            msg = f"Cannot change header {name!r}: headers already sent"
            raise ResponseError(msg)
