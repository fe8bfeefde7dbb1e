"""REST payload — a JSON object built up by handlers.

When no content is buffered and the object is non-empty, the router
serializes it as the response body.

Conventional shapes::

    response.rest.set_results([...], total=42)
    # {"error": false, "results": [...], "total": 42}

    response.rest.set_error("Invalid input", {"name": "required"})
    # {"error": true, "message": "Invalid input", "errors": {"name": "required"}}
"""

from collections.abc import Mapping
from typing import Any, Self

from roost.config import RouterConfig
from roost.http.request import Request
from roost.http.response import ServerResponse

_MISSING = object()


class RestPayload:
    """A mutable JSON object with path-based access."""

    __slots__ = ("_data",)

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"RestPayload({self._data!r})"

    def get(self, *path: str) -> Any:
        """Return the whole object, or the value at *path* (``None`` if missing).

        ``get("user", "name")`` reads ``data["user"]["name"]``.
        """
        value = self._lookup(path)
        return None if value is _MISSING else value

    def has(self, *path: str) -> bool:
        """Whether the object is non-empty, or *path* exists in it."""
        if not path:
            return bool(self._data)
        return self._lookup(path) is not _MISSING

    def set(self, key: str | Mapping[str, Any], value: Any = None) -> Self:
        """Set one key, or merge a mapping into the top level."""
        if isinstance(key, Mapping):
            self._data.update(key)
        else:
            self._data[key] = value
        return self

    def remove(self, key: str) -> Self:
        """Delete a top-level key if present."""
        self._data.pop(key, None)
        return self

    def set_error(self, message: str, errors: Mapping[str, Any] | None = None) -> Self:
        """Mark the payload as a failure."""
        self._data.update(error=True, message=message)
        if errors:
            self._data["errors"] = dict(errors)
        return self

    def set_results(self, results: Any, total: int | None = None) -> Self:
        """Mark the payload as a success carrying *results*."""
        self._data.update(error=False, results=results)
        if total is not None:
            self._data["total"] = total
        return self

    def _lookup(self, path: tuple[str, ...]) -> Any:
        value: Any = self._data
        for key in path:
            if not isinstance(value, Mapping) or key not in value:
                return _MISSING
            value = value[key]
        return value


def rest_trait(config: RouterConfig, request: Request, response: ServerResponse) -> None:
    """Attach an empty ``RestPayload`` as ``response.rest``."""
    response.rest = RestPayload()
