"""Typed ASGI definitions.

Raw ASGI callable types plus a typed view of the HTTP scope for
internal use. Users never see these.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from dataclasses import dataclass
from typing import Any, TypeAlias
from urllib.parse import quote

# Raw ASGI 3.0 callable types
Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class HTTPScope:
    """The parts of an ASGI ``http`` scope that ``Request`` is built from.

    Optional keys fall back to the ASGI defaults.
    """

    method: str
    path: str
    raw_path: bytes | None
    query_string: bytes
    root_path: str
    scheme: str
    http_version: str
    headers: tuple[tuple[bytes, bytes], ...]
    server: tuple[str, int] | None
    client: tuple[str, int] | None

    @property
    def target(self) -> str:
        """The request target: path plus query string, as sent on the wire.

        ``path`` arrives percent-decoded, so the undecoded ``raw_path`` is
        preferred; a decoded ``%3F`` would otherwise read as a query.
        """
        if self.raw_path:
            path = self.raw_path.decode("latin-1")
        else:
            path = quote(self.path, safe="/!$&'()*+,;=:@")
        if self.query_string:
            return f"{path}?{self.query_string.decode('latin-1')}"
        return path

    @classmethod
    def from_scope(cls, scope: Scope) -> "HTTPScope":
        """Read *scope*, tolerating servers that omit optional keys."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            raw_path=scope.get("raw_path"),
            query_string=scope.get("query_string", b""),
            root_path=scope.get("root_path", ""),
            scheme=scope.get("scheme", "http"),
            http_version=scope.get("http_version", "1.1"),
            headers=tuple(scope.get("headers", ())),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
        )
