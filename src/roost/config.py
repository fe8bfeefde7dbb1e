"""Router configuration.

RouterConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(stage=False, json_indent=4)
    """

    # Payload traits attached to every request/response pair
    content: bool = True
    rest: bool = True
    server: bool = True
    stage: bool = True

    # Default rendering
    default_status: int = 200
    default_status_message: str = "OK"
    content_type: str = "text/html"
    rest_content_type: str = "text/json"  # Not application/json; existing clients expect it
    json_indent: int = 2

    # Limits
    max_body_size: int = 16 * 1024 * 1024  # 16 MB
