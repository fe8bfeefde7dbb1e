"""Events — the pattern-matching bus every other layer is built on."""

from roost.events.emitter import EventEmitter, EventMatch, Listener, Status, match_pattern

__all__ = ["EventEmitter", "EventMatch", "Listener", "Status", "match_pattern"]
