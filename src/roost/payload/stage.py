"""Stage payload — one merged view of everything the client sent.

Reads the body once, parses it by content type, and sets
``request.stage`` to the query parameters overlaid with the body
fields. The router later overlays route parameters on top.

Precedence, lowest to highest: query string, body, route parameters.
"""

import json as json_module
import logging
from typing import Any

from roost._internal.multimap import flatten
from roost.config import RouterConfig
from roost.errors import PayloadError
from roost.http.forms import is_form
from roost.http.request import Request
from roost.http.response import ServerResponse

logger = logging.getLogger("roost.payload")


async def stage_trait(config: RouterConfig, request: Request, response: ServerResponse) -> None:
    """Parse the body and attach ``request.stage`` and ``request.body_data``.

    Raises ``PayloadError`` for bodies over ``config.max_body_size``
    and for malformed JSON or form bodies.
    """
    stage: dict[str, Any] = flatten(request.query)
    body = await request.body(limit=config.max_body_size)

    if body:
        content_type = request.content_type or ""
        if is_form(content_type):
            form = await request.form()
            request.body_data = form
            stage.update(flatten(form))
            stage.update(form.files)
        elif "json" in content_type.lower():
            try:
                data = json_module.loads(body)
            except ValueError:
                raise PayloadError("Malformed JSON body") from None
            request.body_data = data
            if isinstance(data, dict):
                stage.update(data)
        else:
            request.body_data = body
            logger.debug("Left %d-byte %r body unparsed", len(body), content_type)

    request.stage = stage
