"""HTTP verbs the router registers shortcuts for.

A fixed table: every ``Router`` builds its verb shortcuts from it once,
at construction.
"""

VERBS: tuple[str, ...] = (
    "CONNECT",
    "DELETE",
    "GET",
    "HEAD",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "TRACE",
)

# Registering under ALL matches any of these, and any other verb token
ALL = "ALL"
ALL_VERBS_PATTERN = r"[A-Za-z0-9\-]+"
