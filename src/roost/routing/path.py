"""Path template compilation.

Turns a path template into an anchored regex plus the ordered list of
keys its capture groups bind to::

    "/users"                -> ^/users(?:/(?=$))?$
    "/users/:id"            -> one key, "id", matching [^/]+?
    "/users/:id<int>"       -> "id" restricted to digits
    "/users/:id(\\d+)"      -> "id" with a custom pattern
    "/files/:path*"         -> zero or more segments, "/"-joined
    "/archive/(\\d{4})"     -> unnamed group, key 0
    "/assets/*"             -> unnamed wildcard

Keys are named by string for ``:name`` segments and numbered from 0 for
unnamed groups, in the order the groups appear.
"""

import re
from dataclasses import dataclass

from roost.errors import ConfigurationError

# Canned patterns for ``:name<converter>``
CONVERTERS: dict[str, str] = {
    "str": r"[^/]+?",
    "int": r"\d+",
    "float": r"\d+(?:\.\d+)?",
    "path": r".+",
}

_TOKEN = re.compile(
    r"(\\.)"  # escaped character
    r"|([/.])?(?:"
    r"(?::(\w+)(?:<(\w+)>)?(?:\(((?:\\.|[^\\()])+)\))?"  # :name<conv>(pattern)
    r"|\(((?:\\.|[^\\()])+)\))"  # (pattern)
    r"([+*?])?"
    r"|(\*))"  # bare wildcard
)


@dataclass(frozen=True, slots=True)
class PathKey:
    """A capture group in a compiled path.

    ``name`` is a string for named segments and an int for unnamed ones.
    ``prefix`` is the delimiter folded into the group, so an optional
    ``/:id?`` also makes its slash optional.
    """

    name: str | int
    prefix: str = ""
    pattern: str = r"[^/]+?"
    optional: bool = False
    repeat: bool = False


@dataclass(frozen=True, slots=True)
class CompiledPath:
    """Result of ``compile_path``."""

    template: str
    regex: re.Pattern[str]
    keys: tuple[PathKey, ...]


def parse_template(template: str) -> list[str | PathKey]:
    """Split *template* into static text and ``PathKey`` tokens.

    Raises ``ConfigurationError`` for unknown converters or custom
    patterns that do not compile or contain their own capture groups.
    """
    tokens: list[str | PathKey] = []
    text = ""
    position = 0
    unnamed = 0

    for found in _TOKEN.finditer(template):
        text += template[position : found.start()]
        position = found.end()
        escaped, prefix, name, converter, custom, group, modifier, asterisk = found.groups()

        if escaped:
            text += escaped[1]
            continue

        if text:
            tokens.append(text)
            text = ""

        delimiter = prefix or "/"
        if converter is not None:
            if converter not in CONVERTERS:
                msg = f"Unknown converter <{converter}> in path {template!r}"
                raise ConfigurationError(msg)
            pattern = CONVERTERS[converter]
        elif custom or group:
            pattern = _check_pattern(custom or group, template)
        elif asterisk:
            pattern = ".*"
        else:
            pattern = f"[^{re.escape(delimiter)}]+?"

        if name is None:
            key_name: str | int = unnamed
            unnamed += 1
        else:
            key_name = name

        tokens.append(
            PathKey(
                name=key_name,
                prefix=prefix or "",
                pattern=pattern,
                optional=modifier in ("?", "*"),
                repeat=modifier in ("+", "*"),
            )
        )

    text += template[position:]
    if text:
        tokens.append(text)
    return tokens


def compile_path(
    template: str,
    *,
    sensitive: bool = False,
    strict: bool = False,
    end: bool = True,
) -> CompiledPath:
    """Compile a path template into an anchored regex and its keys.

    Args:
        template: The path template, e.g. ``"/users/:id"``.
        sensitive: Match case-sensitively. Off by default.
        strict: Reject a trailing slash the template does not have.
        end: Anchor the end, so ``/users`` does not match ``/users/42``.
    """
    if not isinstance(template, str):
        msg = f"Path template must be a string, got {type(template).__name__}"
        raise ConfigurationError(msg)

    tokens = parse_template(template)
    source = ""
    for token in tokens:
        if isinstance(token, str):
            source += re.escape(token)
            continue
        prefix = re.escape(token.prefix)
        capture = token.pattern
        if token.repeat:
            capture += f"(?:{prefix}{capture})*"
        if token.optional:
            source += f"(?:{prefix}({capture}))?" if prefix else f"({capture})?"
        else:
            source += f"{prefix}({capture})"

    ends_with_slash = bool(tokens) and isinstance(tokens[-1], str) and tokens[-1].endswith("/")

    if not strict:
        if ends_with_slash:
            source = source[:-1]
        source += "(?:/(?=$))?"

    if end:
        source += "$"
    elif not (strict and ends_with_slash):
        source += "(?=/|$)"

    regex = re.compile("^" + source, 0 if sensitive else re.IGNORECASE)
    keys = tuple(token for token in tokens if isinstance(token, PathKey))
    return CompiledPath(template=template, regex=regex, keys=keys)


def keys_from_regex(pattern: re.Pattern[str]) -> tuple[PathKey, ...]:
    """Derive keys for a user-supplied regex.

    Named groups (``(?P<id>...)``) bind by name; the rest are numbered
    from 0 in group order.
    """
    names = {index: name for name, index in pattern.groupindex.items()}
    keys: list[PathKey] = []
    unnamed = 0
    for index in range(1, pattern.groups + 1):
        if index in names:
            keys.append(PathKey(name=names[index]))
        else:
            keys.append(PathKey(name=unnamed))
            unnamed += 1
    return tuple(keys)


def _check_pattern(pattern: str, template: str) -> str:
    try:
        compiled = re.compile(pattern)
    except re.error as exc:
        msg = f"Invalid pattern ({pattern}) in path {template!r}: {exc}"
        raise ConfigurationError(msg) from None
    if compiled.groups:
        msg = f"Pattern ({pattern}) in path {template!r} must not contain capture groups"
        raise ConfigurationError(msg)
    return pattern
