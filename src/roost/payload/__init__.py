"""Payload traits — extension namespaces attached to each request/response pair.

Each trait is a function ``(config, request, response)`` that fills in
one extension field. ``configure_payload`` applies the enabled ones in a
fixed order before the first pipeline stage runs.
"""

from roost.config import RouterConfig
from roost.http.request import Request
from roost.http.response import ServerResponse
from roost.payload.content import ContentPayload, content_trait
from roost.payload.rest import RestPayload, rest_trait
from roost.payload.server import ServerInfo, server_trait
from roost.payload.stage import stage_trait

__all__ = [
    "ContentPayload",
    "RestPayload",
    "ServerInfo",
    "configure_payload",
    "content_trait",
    "rest_trait",
    "server_trait",
    "stage_trait",
]


async def configure_payload(config: RouterConfig, request: Request, response: ServerResponse) -> None:
    """Apply the traits enabled in *config*: content, rest, server, stage.

    The stage trait reads the request body, so this may suspend.
    """
    if config.content:
        content_trait(config, request, response)
    if config.rest:
        rest_trait(config, request, response)
    if config.server:
        server_trait(config, request, response)
    if config.stage:
        await stage_trait(config, request, response)
