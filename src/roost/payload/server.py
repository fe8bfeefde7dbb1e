"""Server payload — per-request connection metadata on ``request.server``."""

from dataclasses import dataclass

from roost.config import RouterConfig
from roost.http.request import Request
from roost.http.response import ServerResponse

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}


@dataclass(frozen=True, slots=True)
class ServerInfo:
    """Where a request arrived and who sent it.

    ``host`` and ``port`` prefer the ``Host`` header over the address
    the server is bound to, so they match what the client asked for.
    """

    host: str
    port: int | None
    scheme: str
    client: tuple[str, int] | None
    root_path: str
    http_version: str

    @property
    def secure(self) -> bool:
        return self.scheme in ("https", "wss")

    @property
    def origin(self) -> str:
        """``scheme://host[:port]``, leaving out default ports."""
        if self.port is None or self.port == _DEFAULT_PORTS.get(self.scheme):
            return f"{self.scheme}://{self.host}"
        return f"{self.scheme}://{self.host}:{self.port}"


def _split_host(value: str) -> tuple[str, int | None]:
    host, sep, port = value.rpartition(":")
    # No port, or an unbracketed IPv6 literal
    if not sep or "]" in port or not port.isdigit():
        return value, None
    return host, int(port)


def server_trait(config: RouterConfig, request: Request, response: ServerResponse) -> None:
    """Attach a ``ServerInfo`` as ``request.server``."""
    header = request.headers.get("host")
    if header:
        host, port = _split_host(header)
    elif request.server_address is not None:
        host, port = request.server_address
    else:
        host, port = "localhost", None

    if port is None:
        port = _DEFAULT_PORTS.get(request.scheme)

    request.server = ServerInfo(
        host=host,
        port=port,
        scheme=request.scheme,
        client=request.client,
        root_path=request.root_path,
        http_version=request.http_version,
    )
