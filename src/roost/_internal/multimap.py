"""MultiValueMapping protocol — shared shape of QueryParams and FormData.

The stage payload collapses any of these into a plain dict, so it
accepts the protocol rather than the concrete classes.
"""

from collections.abc import Iterator
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MultiValueMapping(Protocol):
    """A read-only string mapping where keys can have multiple values.

    ``__getitem__`` returns the first value for a key.
    ``get_list`` returns all values for a key.
    """

    def __getitem__(self, key: str) -> str: ...
    def __contains__(self, key: object) -> bool: ...
    def __iter__(self) -> Iterator[str]: ...
    def __len__(self) -> int: ...
    def get_list(self, key: str) -> list[str]: ...


def flatten(mapping: MultiValueMapping) -> dict[str, Any]:
    """Collapse a multi-valued mapping into a plain dict.

    Single values stay strings; repeated keys become lists::

        flatten(QueryParams("a=1&b=2&b=3"))  # {"a": "1", "b": ["2", "3"]}
    """
    flat: dict[str, Any] = {}
    for key in mapping:
        values = mapping.get_list(key)
        flat[key] = values[0] if len(values) == 1 else values
    return flat
