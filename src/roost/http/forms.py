"""Form body parsing — URL-encoded and multipart.

Implements ``MultiValueMapping`` for consistent access across
``QueryParams`` and ``FormData``.

``python-multipart`` is an optional dependency (``pip install roost[forms]``).
URL-encoded forms use stdlib ``urllib.parse``, no extra dependency.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

from roost.errors import ConfigurationError, PayloadError

FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission.

    The content is held in memory; ``RouterConfig.max_body_size`` bounds it.
    """

    filename: str
    content_type: str
    size: int
    content: bytes

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


class FormData(Mapping[str, str]):
    """Immutable parsed form data.

    ``__getitem__`` returns the first value for a key (string fields only).
    ``get_list`` returns all values for a key.
    ``files`` provides access to uploaded files by field name.
    """

    __slots__ = ("_data", "_files")

    def __init__(
        self,
        data: dict[str, list[str]],
        files: dict[str, UploadFile] | None = None,
    ) -> None:
        self._data = data
        self._files = files or {}

    @property
    def files(self) -> Mapping[str, UploadFile]:
        """Uploaded files by field name."""
        return self._files

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"FormData({{{items}}})"

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects)."""
        return list(self._data.get(key, []))


def is_form(content_type: str) -> bool:
    """Whether *content_type* is one of the form encodings."""
    return content_type.lower().split(";")[0].strip() in FORM_TYPES


def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse a form body into ``FormData``.

    Raises:
        ConfigurationError: If multipart parsing is needed but
            ``python-multipart`` is not installed.
        PayloadError: If the body is not a well-formed form.
    """
    ct_lower = content_type.lower().split(";")[0].strip()

    if ct_lower == "application/x-www-form-urlencoded":
        try:
            return FormData(parse_qs(body.decode("utf-8"), keep_blank_values=True))
        except UnicodeDecodeError:
            raise PayloadError("Form body is not valid UTF-8") from None

    if ct_lower == "multipart/form-data":
        return _parse_multipart(body, content_type)

    raise PayloadError(f"Unsupported form content type: {content_type!r}", status=415)


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    """Parse multipart form data using python-multipart."""
    try:
        from python_multipart.multipart import MultipartParser, parse_options_header
    except ImportError:
        msg = (
            "Multipart form parsing requires the 'python-multipart' package. "
            "Install it with: pip install roost[forms]"
        )
        raise ConfigurationError(msg) from None

    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if boundary is None:
        raise PayloadError("Multipart form data missing boundary parameter")

    data: dict[str, list[str]] = {}
    files: dict[str, UploadFile] = {}

    # State of the part being parsed
    headers: dict[str, str] = {}
    chunk = bytearray()
    field_name: str | None = None
    filename: str | None = None
    header_field = ""

    def on_part_begin() -> None:
        nonlocal headers, chunk, field_name, filename
        headers = {}
        chunk = bytearray()
        field_name = None
        filename = None

    def on_part_data(raw: bytes, start: int, end: int) -> None:
        chunk.extend(raw[start:end])

    def on_part_end() -> None:
        if field_name is None:
            return
        if filename is not None:
            content = bytes(chunk)
            files[field_name] = UploadFile(
                filename=filename,
                content_type=headers.get("content-type", "application/octet-stream"),
                size=len(content),
                content=content,
            )
        else:
            data.setdefault(field_name, []).append(chunk.decode("utf-8", errors="replace"))

    def on_header_field(raw: bytes, start: int, end: int) -> None:
        nonlocal header_field
        header_field = raw[start:end].decode("latin-1").lower()

    def on_header_value(raw: bytes, start: int, end: int) -> None:
        nonlocal field_name, filename
        value = raw[start:end].decode("latin-1")
        headers[header_field] = value
        if header_field == "content-disposition":
            _, params = parse_options_header(value.encode("latin-1"))
            if (name := params.get(b"name")) is not None:
                field_name = name.decode("utf-8")
            if (fname := params.get(b"filename")) is not None:
                filename = fname.decode("utf-8")

    callbacks: dict[str, Any] = {
        "on_part_begin": on_part_begin,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
    }

    parser = MultipartParser(boundary, callbacks)
    parser.write(body)
    parser.finalize()

    return FormData(data, files)
