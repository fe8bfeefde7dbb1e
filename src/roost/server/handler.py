"""Request lifecycle — the staged pipeline run for every request.

Stages, in order, each one bus emission:

1. ``"request"``         — before routing; may reject the request
2. ``"<VERB> <PATH>"``   — the routes
3. ``"response"``        — after a response was produced

Payload traits are attached before stage 1. Between stages 2 and 3 the
pipeline renders whatever body the handlers left on the content or rest
payload. A stage returning ``Status.INCOMPLETE`` ends the pipeline, and
so does a stage that raises: the exception goes to ``next`` instead of
propagating.
"""

import json as json_module
import logging
from typing import Any

from roost._internal.invoke import invoke
from roost._internal.types import NextHandler
from roost.config import RouterConfig
from roost.events.emitter import EventEmitter, Status
from roost.http.request import Request
from roost.http.response import ServerResponse
from roost.payload import configure_payload

logger = logging.getLogger("roost.server")


async def handle_request(
    request: Request,
    response: ServerResponse,
    next: NextHandler,
    *,
    emitter: EventEmitter,
    config: RouterConfig,
) -> None:
    """Process a single request through the full pipeline."""
    try:
        await configure_payload(config, request, response)
    except Exception as exc:
        await invoke(next, exc)
        return

    event = f"{request.method.upper()} {request.path}"

    if not await step("request", emitter, request, response, next):
        return

    if not await step(event, emitter, request, response, next):
        return

    try:
        responded = await render(response, config)
    except Exception as exc:
        await invoke(next, exc)
        return

    # Nothing was sent and nothing was buffered: leave the response as
    # the handlers left it, and don't announce a response that never happened.
    if responded:
        await step("response", emitter, request, response, next)


async def step(
    event: str,
    emitter: EventEmitter,
    request: Request,
    response: ServerResponse,
    next: NextHandler,
) -> bool:
    """Emit one stage. Returns whether the pipeline should continue."""
    try:
        status = await emitter.emit(event, request, response)
    except Exception as exc:
        await invoke(next, exc)
        return False

    if status is Status.INCOMPLETE:
        logger.debug("%s %s stopped at %r", request.method, request.path, event)
        return False
    return True


async def render(response: ServerResponse, config: RouterConfig) -> bool:
    """Send the buffered payload, if any.

    Content wins over rest. Returns whether a response exists, either
    already sent by a handler or sent here.
    """
    if response.headers_sent:
        return True

    if response.content is not None and response.content.has():
        _apply_status(response, config)
        if not response.has_header("content-type"):
            response.set_header("Content-Type", config.content_type)
        await response.end(_as_body(response.content.get()))
        return True

    if response.rest is not None and response.rest.has():
        _apply_status(response, config)
        response.set_header("Content-Type", config.rest_content_type)
        body = json_module.dumps(
            response.rest.get(), indent=config.json_indent, ensure_ascii=False
        )
        await response.end(body)
        return True

    return False


def _apply_status(response: ServerResponse, config: RouterConfig) -> None:
    response.status = response.status or config.default_status
    response.status_message = response.status_message or config.default_status_message


def _as_body(value: Any) -> str | bytes:
    return value if isinstance(value, bytes) else str(value)
