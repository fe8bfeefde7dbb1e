"""Roost exception hierarchy.

Shared across the event bus, router, payload traits, and the request
orchestrator so every module raises and catches the same types.
"""


class RoostError(Exception):
    """Base for all roost-specific errors."""


class ConfigurationError(RoostError):
    """Raised when a registration or the router configuration is invalid.

    Raised eagerly at setup time (bad path templates, unknown priority
    arguments), never during dispatch.
    """


class PayloadError(RoostError):
    """Raised when a request body cannot be read or parsed.

    Raised inside the stage payload trait. The orchestrator hands it to
    the ``next`` continuation like any other pipeline failure.
    """

    def __init__(self, detail: str, *, status: int = 400) -> None:
        self.detail = detail
        self.status = status
        super().__init__(detail)

    def __str__(self) -> str:
        return f"{self.status}: {self.detail}"


class ResponseError(RoostError):
    """Raised when writing to a response that has already ended."""
