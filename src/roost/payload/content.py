"""Content payload — a buffered response body.

Handlers that set content leave writing to the router, which renders
it as ``text/html`` unless a content type is already set.
"""

from typing import Any, Self

from roost.config import RouterConfig
from roost.http.request import Request
from roost.http.response import ServerResponse


class ContentPayload:
    """Holds the body a handler wants sent."""

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value: Any = None

    def __repr__(self) -> str:
        return f"ContentPayload({self._value!r})"

    def set(self, value: Any) -> Self:
        """Replace the buffered content."""
        self._value = value
        return self

    def append(self, chunk: str) -> Self:
        """Add *chunk* to the end of the buffered text."""
        self._value = chunk if self._value is None else f"{self._value}{chunk}"
        return self

    def get(self) -> Any:
        """Return the buffered content (``None`` if unset)."""
        return self._value

    def has(self) -> bool:
        """Whether non-empty content is buffered."""
        return self._value is not None and self._value not in ("", b"")

    def clear(self) -> Self:
        self._value = None
        return self


def content_trait(config: RouterConfig, request: Request, response: ServerResponse) -> None:
    """Attach an empty ``ContentPayload`` as ``response.content``."""
    response.content = ContentPayload()
