"""Pattern event bus with priority ordering and short-circuit control.

Listeners are registered under a pattern (an exact event name or a
compiled regex) with an integer priority. ``emit()`` matches a literal
event string against every pattern and runs the matched listeners one
at a time, highest priority first, first-registered first among equals.

A listener stops the emission by returning ``Status.INCOMPLETE``.
Exceptions raised by listeners are never caught here.

Thread safety:
    Registration is expected to finish before traffic begins. The
    registry is read-only during dispatch, so concurrent emissions are
    safe; registering while emitting is not supported.
"""

import logging
from bisect import insort
from collections.abc import Callable
from contextvars import ContextVar
from dataclasses import dataclass
from enum import Enum
from typing import Any, Self

from roost._internal.invoke import invoke
from roost._internal.types import Handler, Pattern

logger = logging.getLogger("roost.events")


class Status(Enum):
    """Outcome of an emission.

    ``INCOMPLETE`` means a listener took over and nothing further should
    run, neither the remaining listeners nor later pipeline stages.
    """

    OK = "ok"
    INCOMPLETE = "incomplete"


@dataclass(frozen=True, slots=True)
class Listener:
    """A handler registered under a pattern."""

    pattern: Pattern
    handler: Handler
    priority: int = 0
    sequence: int = 0

    @property
    def sort_key(self) -> tuple[int, int]:
        """Higher priority first, then registration order."""
        return (-self.priority, self.sequence)


@dataclass(frozen=True, slots=True)
class EventMatch:
    """How one listener's pattern matched an emitted event.

    ``groups`` holds the regex captures, in order. Literal patterns
    capture nothing.
    """

    event: str
    pattern: Pattern
    groups: tuple[str | None, ...] = ()


_current_match: ContextVar[EventMatch | None] = ContextVar("roost_event", default=None)


def match_pattern(pattern: Pattern, event: str) -> EventMatch | None:
    """Test *event* against *pattern*.

    Literal patterns must be equal to the event. Regex patterns are
    matched from the start of the event; they anchor their own end.
    """
    if isinstance(pattern, str):
        return EventMatch(event, pattern) if pattern == event else None
    found = pattern.match(event)
    if found is None:
        return None
    return EventMatch(event, pattern, found.groups())


class EventEmitter:
    """Priority-ordered event bus.

    Usage::

        bus = EventEmitter()
        bus.on("request", log_request, priority=10)
        bus.on(re.compile(r"^GET\\s/users/(\\d+)$"), show_user)

        status = await bus.emit("GET /users/42", request, response)
        if status is Status.INCOMPLETE:
            ...
    """

    __slots__ = ("_listeners", "_sequence", "meta")

    def __init__(self) -> None:
        # Pattern -> listeners kept sorted by Listener.sort_key
        self._listeners: dict[Pattern, list[Listener]] = {}
        self._sequence = 0
        # Shared metadata; merge() links a source's meta to the receiver's
        self.meta: dict[str, Any] = {}

    # -- Registration --

    def on(self, pattern: Pattern, handler: Handler, priority: int = 0) -> Self:
        """Register *handler* for events matching *pattern*.

        Registering the same pattern again adds another listener; nothing
        is replaced.
        """
        listener = Listener(pattern, handler, priority, self._sequence)
        self._sequence += 1
        insort(
            self._listeners.setdefault(pattern, []),
            listener,
            key=lambda item: item.sort_key,
        )
        return self

    def off(self, pattern: Pattern, handler: Handler | None = None) -> Self:
        """Remove listeners registered under *pattern*.

        With *handler*, only the listeners bound to that handler go.
        Unknown patterns are ignored.
        """
        listeners = self._listeners.get(pattern)
        if listeners is None:
            return self
        if handler is None:
            del self._listeners[pattern]
            return self
        kept = [item for item in listeners if item.handler is not handler]
        if kept:
            self._listeners[pattern] = kept
        else:
            del self._listeners[pattern]
        return self

    def once(self, pattern: Pattern, handler: Handler, priority: int = 0) -> Self:
        """Register *handler* to run for the next matching emission only."""

        async def listener(*args: Any) -> Any:
            self.off(pattern, listener)
            return await invoke(handler, *args)

        return self.on(pattern, listener, priority)

    def merge(self, source: "EventEmitter") -> Self:
        """Copy every listener of *source* into this emitter.

        Priorities are kept. Listeners are re-registered in the source's
        registration order, so they keep their relative order and take
        new sequence numbers after anything already registered here.
        Afterwards *source* shares this emitter's ``meta`` dict.
        """
        for listener in source.listeners():
            self.on(listener.pattern, listener.handler, listener.priority)
        source.meta = self.meta
        return self

    # -- Introspection --

    def listeners(self, pattern: Pattern | None = None) -> list[Listener]:
        """Return registered listeners.

        Without *pattern*: every listener, in registration order.
        With *pattern*: that pattern's listeners, in dispatch order.
        """
        if pattern is not None:
            return list(self._listeners.get(pattern, ()))
        everything = [item for group in self._listeners.values() for item in group]
        return sorted(everything, key=lambda item: item.sequence)

    @property
    def patterns(self) -> list[Pattern]:
        """Every pattern with at least one listener."""
        return list(self._listeners)

    @property
    def event(self) -> EventMatch | None:
        """The match of the listener currently running, if any.

        Task-local: concurrent emissions each see their own match.
        """
        return _current_match.get()

    def match(self, event: str) -> list[tuple[Listener, EventMatch]]:
        """Return every listener matching *event*, in dispatch order."""
        matched: list[tuple[Listener, EventMatch]] = []
        for pattern, listeners in self._listeners.items():
            found = match_pattern(pattern, event)
            if found is None:
                continue
            matched.extend((listener, found) for listener in listeners)
        matched.sort(key=lambda pair: pair[0].sort_key)
        return matched

    # -- Dispatch --

    async def emit(self, event: str, *args: Any) -> Status:
        """Run every listener matching *event* with *args*.

        Returns ``Status.INCOMPLETE`` as soon as a listener returns it,
        skipping the rest. Returns ``Status.OK`` otherwise, including
        when no listener matched.
        """
        for listener, found in self.match(event):
            token = _current_match.set(found)
            try:
                result = await invoke(listener.handler, *args)
            finally:
                _current_match.reset(token)
            if result is Status.INCOMPLETE:
                logger.debug("%r halted by %s", event, _describe(listener.handler))
                return Status.INCOMPLETE
        return Status.OK


def _describe(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
